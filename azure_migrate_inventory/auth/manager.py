"""Authentication manager for Azure services"""

import subprocess
from typing import Dict, List, Any

try:
    from azure.identity import (
        DefaultAzureCredential,
        AzureCliCredential
    )
    from azure.mgmt.resource import ResourceManagementClient
    from azure.mgmt.compute import ComputeManagementClient
    from azure.mgmt.network import NetworkManagementClient
    from azure.mgmt.monitor import MonitorManagementClient
    from azure.mgmt.subscription import SubscriptionClient
    from azure.monitor.query import LogsQueryClient
    from azure.core.exceptions import ClientAuthenticationError
except ImportError as e:
    raise ImportError(f"Required Azure SDK packages not installed: {e}")

from ..utils.logger import setup_logger


class AuthenticationManager:
    """Manages Azure authentication and client creation"""

    def __init__(self, request_timeout: int = 60, retry_total: int = 0):
        self.logger = setup_logger(self.__class__.__name__)
        self.credential = None
        self.request_timeout = request_timeout
        self.retry_total = retry_total
        self._client_cache = {}

    def get_credential(self):
        """Get the current credential, initializing if needed"""
        if not self.credential:
            try:
                # Azure CLI first as it's what the az-based workflow uses
                self.credential = AzureCliCredential()
                self._test_credential()
                self.logger.info("Credential initialized using Azure CLI")
            except Exception as e:
                self.logger.debug(f"Azure CLI credential failed: {e}")
                try:
                    self.credential = DefaultAzureCredential()
                    self._test_credential()
                    self.logger.info("Credential initialized using default credential chain")
                except Exception as e2:
                    self.logger.error(f"Failed to initialize credential: {e2}")
                    self.credential = None
                    raise ClientAuthenticationError("Unable to authenticate with Azure")

        return self.credential

    def _test_credential(self):
        """Test the credential by listing subscriptions"""
        subscription_client = SubscriptionClient(self.credential)
        next(iter(subscription_client.subscriptions.list()), None)

    def get_accessible_subscriptions(self) -> List[Dict[str, str]]:
        """Get enabled subscriptions as id/name pairs"""

        try:
            subscription_client = SubscriptionClient(self.get_credential())
            subscriptions = []
            for sub in subscription_client.subscriptions.list():
                if sub.state == 'Enabled':
                    subscriptions.append({'id': sub.subscription_id, 'name': sub.display_name})
                    self.logger.debug(f"Found subscription: {sub.display_name} ({sub.subscription_id})")

            self.logger.info(f"Found {len(subscriptions)} enabled subscriptions")
            return subscriptions

        except Exception as e:
            self.logger.error(f"Failed to list subscriptions: {e}")
            return self._get_subscriptions_from_cli()

    def _get_subscriptions_from_cli(self) -> List[Dict[str, str]]:
        """Fallback: Get subscriptions using Azure CLI"""

        try:
            result = subprocess.run(
                ['az', 'account', 'list', '--query', '[?state==`Enabled`].[id, name]', '-o', 'tsv'],
                capture_output=True, text=True, check=True
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Azure CLI failed: {e}")
            raise RuntimeError(
                "Unable to determine subscriptions. Please ensure Azure CLI is installed and you're logged in."
            )

        subscriptions = []
        for line in result.stdout.strip().split('\n'):
            if not line.strip():
                continue
            sub_id, _, name = line.partition('\t')
            subscriptions.append({'id': sub_id.strip(), 'name': name.strip()})

        self.logger.info(f"Found {len(subscriptions)} subscriptions via Azure CLI")
        return subscriptions

    def _client_options(self) -> Dict[str, Any]:
        """Per-call timeout and retry settings applied to every SDK client"""
        return {
            'connection_timeout': self.request_timeout,
            'read_timeout': self.request_timeout,
            'retry_total': self.retry_total,
        }

    def get_clients_for_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Get Azure service clients for a subscription"""

        if subscription_id in self._client_cache:
            return self._client_cache[subscription_id]

        credential = self.get_credential()
        options = self._client_options()

        try:
            clients = {
                'resource': ResourceManagementClient(credential, subscription_id, **options),
                'compute': ComputeManagementClient(credential, subscription_id, **options),
                'network': NetworkManagementClient(credential, subscription_id, **options),
                'monitor': MonitorManagementClient(credential, subscription_id, **options),
                'logs': LogsQueryClient(credential, **options),
            }
        except Exception as e:
            self.logger.error(f"Failed to create clients for subscription {subscription_id}: {e}")
            raise

        self._client_cache[subscription_id] = clients
        self.logger.debug(f"Created clients for subscription {subscription_id}")
        return clients
