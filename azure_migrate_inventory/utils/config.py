"""Configuration loading and management"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import asdict, fields

from ..core.models import AggregationPolicy, InventoryConfiguration
from .logger import setup_logger

ENV_PREFIX = "AZURE_MIGRATE_INVENTORY_"

# Nested YAML sections flatten to "<section>_<key>"; map them onto field names
SECTION_ALIASES = {
    'scope_subscription_id': 'subscription_id',
    'scope_resource_group': 'resource_group',
    'workspace_name': 'workspace_name',
    'workspace_resource_group': 'workspace_resource_group',
    'metrics_lookback_hours': 'lookback_hours',
    'metrics_aggregation': 'aggregation',
    'output_path': 'output_path',
    'output_log_dir': 'log_dir',
    'output_log_level': 'log_level',
    'execution_parallel_workers': 'parallel_workers',
    'execution_request_timeout': 'request_timeout',
    'execution_retry_total': 'retry_total',
}


class ConfigurationLoader:
    """Load and manage configuration from various sources"""

    def __init__(self):
        self.logger = setup_logger(self.__class__.__name__)

    def load_configuration(
        self,
        config_file: Optional[str] = None,
        **overrides
    ) -> InventoryConfiguration:
        """Load configuration from file and environment variables, then apply overrides"""

        # Start with default configuration
        config_dict = asdict(InventoryConfiguration())

        # Load from config file if provided
        if config_file:
            file_config = self._load_from_file(config_file)
            if file_config:
                config_dict.update(file_config)
        else:
            default_config = self._load_default_config()
            if default_config:
                config_dict.update(default_config)

        # Load from environment variables
        config_dict.update(self._load_from_environment())

        # Apply any direct overrides
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

        # Remove unknown keys
        known_keys = {f.name for f in fields(InventoryConfiguration)}
        unknown_keys = sorted(set(config_dict) - known_keys)
        if unknown_keys:
            self.logger.debug(f"Ignoring unknown configuration keys: {', '.join(unknown_keys)}")

        config = InventoryConfiguration(**{k: v for k, v in config_dict.items() if k in known_keys})
        self._validate_configuration(config)
        return config

    def _load_from_file(self, config_file: str) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file"""

        config_path = Path(config_file)
        if not config_path.exists():
            self.logger.warning(f"Configuration file not found: {config_file}")
            return None

        if config_path.suffix.lower() not in ['.yml', '.yaml']:
            self.logger.error(f"Unsupported config file format: {config_path.suffix}")
            return None

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.logger.error(f"Failed to load configuration file {config_file}: {e}")
            return None

        if not isinstance(config_data, dict):
            self.logger.error(f"Configuration file {config_file} must contain a mapping")
            return None

        self.logger.info(f"Loaded configuration from: {config_file}")
        return self._flatten_config(config_data)

    def _load_default_config(self) -> Optional[Dict[str, Any]]:
        """Try to load from default configuration locations"""

        default_locations = [
            "azure_migrate_inventory.yml",
            "azure_migrate_inventory.yaml",
            os.path.expanduser("~/.azure_migrate_inventory.yml"),
            os.path.expanduser("~/.config/azure_migrate_inventory/config.yml"),
        ]

        for location in default_locations:
            if os.path.exists(location):
                return self._load_from_file(location)

        return None

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""

        env_config = {}

        env_mapping = {
            f'{ENV_PREFIX}SUBSCRIPTION_ID': ('subscription_id', str),
            f'{ENV_PREFIX}RESOURCE_GROUP': ('resource_group', str),
            f'{ENV_PREFIX}WORKSPACE_NAME': ('workspace_name', str),
            f'{ENV_PREFIX}WORKSPACE_RESOURCE_GROUP': ('workspace_resource_group', str),
            f'{ENV_PREFIX}OUTPUT_PATH': ('output_path', str),
            f'{ENV_PREFIX}LOOKBACK_HOURS': ('lookback_hours', int),
            f'{ENV_PREFIX}AGGREGATION': ('aggregation', str),
            f'{ENV_PREFIX}PARALLEL_WORKERS': ('parallel_workers', int),
            f'{ENV_PREFIX}REQUEST_TIMEOUT': ('request_timeout', int),
            f'{ENV_PREFIX}RETRY_TOTAL': ('retry_total', int),
            f'{ENV_PREFIX}LOG_DIR': ('log_dir', str),
            f'{ENV_PREFIX}LOG_LEVEL': ('log_level', str),
        }

        for env_var, (config_key, parser) in env_mapping.items():
            value = os.getenv(env_var)
            if value is not None and value != "":
                try:
                    env_config[config_key] = parser(value)
                    self.logger.debug(f"Loaded {config_key} from environment: {value}")
                except ValueError as e:
                    self.logger.warning(f"Failed to parse environment variable {env_var}={value}: {e}")

        return env_config

    def _flatten_config(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten nested configuration dictionary"""

        flattened = {}

        def _flatten(obj, parent_key=''):
            if isinstance(obj, dict):
                for key, value in obj.items():
                    new_key = f"{parent_key}_{key}" if parent_key else key
                    _flatten(value, new_key)
            else:
                flattened[SECTION_ALIASES.get(parent_key, parent_key)] = obj

        _flatten(config_data)
        return flattened

    def _validate_configuration(self, config: InventoryConfiguration) -> None:
        """Validate configuration values"""

        if not config.subscription_id:
            raise ValueError("Subscription ID is required")

        # Raises for unsupported methods
        config.aggregation = AggregationPolicy.parse(config.aggregation).value

        if config.lookback_hours < 1:
            raise ValueError("Lookback hours must be at least 1")

        if config.parallel_workers < 1:
            raise ValueError("Parallel workers must be at least 1")

        if config.parallel_workers > 20:
            self.logger.warning("High number of parallel workers may cause API rate limiting")

        if config.request_timeout < 1:
            raise ValueError("Request timeout must be at least 1 second")

        if config.retry_total < 0:
            raise ValueError("Retry total cannot be negative")

        if config.workspace_name and not config.effective_workspace_resource_group:
            self.logger.warning("Workspace name given without a resource group; memory metrics will be skipped")

        self.logger.debug("Configuration validation completed")

    def save_configuration(self, config: InventoryConfiguration, output_file: str) -> None:
        """Save configuration to file"""

        nested_config = {
            'scope': {
                'subscription_id': config.subscription_id,
                'resource_group': config.resource_group,
            },
            'workspace': {
                'name': config.workspace_name,
                'resource_group': config.workspace_resource_group,
            },
            'metrics': {
                'lookback_hours': config.lookback_hours,
                'aggregation': config.aggregation,
            },
            'output': {
                'path': config.output_path,
                'log_dir': config.log_dir,
                'log_level': config.log_level,
            },
            'execution': {
                'parallel_workers': config.parallel_workers,
                'request_timeout': config.request_timeout,
                'retry_total': config.retry_total,
            },
        }

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(nested_config, f, default_flow_style=False, indent=2, sort_keys=False)

        self.logger.info(f"Configuration saved to: {output_file}")


def create_sample_config(output_file: str = "azure_migrate_inventory_sample.yml") -> Path:
    """Create a sample configuration file"""

    sample_config = {
        'scope': {
            'subscription_id': '00000000-0000-0000-0000-000000000000',
            'resource_group': None,
        },
        'workspace': {
            'name': None,
            'resource_group': None,
        },
        'metrics': {
            'lookback_hours': 168,
            'aggregation': 'P95',
        },
        'output': {
            'path': './azure_migrate_vm_inventory.csv',
            'log_dir': '.',
            'log_level': 'INFO',
        },
        'execution': {
            'parallel_workers': 4,
            'request_timeout': 60,
            'retry_total': 0,
        },
    }

    output_path = Path(output_file)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write("# Azure Migrate VM Inventory Configuration\n")
        f.write("# Leave resource_group empty to scan the entire subscription.\n")
        f.write("# Memory utilization needs a Log Analytics workspace name and resource group.\n\n")
        yaml.dump(sample_config, f, default_flow_style=False, indent=2, sort_keys=False)

    return output_path
