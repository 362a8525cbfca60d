"""Core interfaces for the Azure Migrate VM Inventory system"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .models import (
    VirtualMachineDescriptor,
    SizeProfile,
    MetricSample,
    TimeWindow,
    Number
)


class ISizeCatalog(ABC):
    """Fast VM size catalog scoped to a location"""

    @abstractmethod
    def get_size(self, location: str, size_name: str) -> Optional[SizeProfile]:
        """Return cores/memory for an exact size name, or None when not listed"""
        pass


class ISkuCatalog(ABC):
    """Slower, more complete resource SKU catalog"""

    @abstractmethod
    def get_capabilities(self, location: str, size_name: str) -> Dict[str, str]:
        """Return the capability name/value map of a VM SKU (empty when not found)"""
        pass


class IVirtualMachineStore(ABC):
    """VM listing and detail lookups"""

    @abstractmethod
    def list_virtual_machines(self, resource_group: Optional[str] = None) -> List[VirtualMachineDescriptor]:
        """List VMs in a resource group, or the whole subscription when None"""
        pass

    @abstractmethod
    def get_virtual_machine(self, vm_id: str) -> Optional[VirtualMachineDescriptor]:
        """Fetch the full VM record by resource id"""
        pass


class IDiskStore(ABC):
    """Managed disk lookups"""

    @abstractmethod
    def get_disk_size_gb(self, disk_id: str) -> Optional[Number]:
        """Return the provisioned size of a managed disk"""
        pass


class INetworkStore(ABC):
    """Network interface lookups"""

    @abstractmethod
    def get_private_ip_addresses(self, nic_id: str) -> List[str]:
        """Return private IPs in IP configuration order"""
        pass


class IMetricsService(ABC):
    """Platform metrics queries"""

    @abstractmethod
    def query(
        self,
        resource_id: str,
        metric_names: Sequence[str],
        window: TimeWindow,
        interval: str,
        aggregations: Sequence[str]
    ) -> Dict[str, List[MetricSample]]:
        """Return samples per requested metric name, ordered by timestamp"""
        pass


class ILogQueryService(ABC):
    """Log Analytics queries"""

    @abstractmethod
    def query(self, workspace_resource_id: str, query: str, window: TimeWindow) -> List[List[Any]]:
        """Run a KQL query and return the rows of the first result table"""
        pass


class IWorkspaceResolver(ABC):
    """Resolves a Log Analytics workspace name to its resource id"""

    @abstractmethod
    def resolve(self, workspace_name: str, resource_group: str) -> Optional[str]:
        pass
