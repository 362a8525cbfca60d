"""Azure SDK implementations of the inventory data sources"""

import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from azure.core.exceptions import ResourceNotFoundError
from azure.monitor.query import LogsQueryStatus

from ..core.interfaces import (
    ISizeCatalog,
    ISkuCatalog,
    IVirtualMachineStore,
    IDiskStore,
    INetworkStore,
    IMetricsService,
    ILogQueryService,
    IWorkspaceResolver
)
from ..core.models import (
    DiskReference,
    MetricSample,
    SizeProfile,
    TimeWindow,
    VirtualMachineDescriptor,
    Number
)
from ..utils.logger import setup_logger

WORKSPACE_PROVIDER = "Microsoft.OperationalInsights"
WORKSPACE_TYPE = "workspaces"
WORKSPACE_API_VERSION = "2022-10-01"
VM_SKU_RESOURCE_TYPE = "virtualMachines"


def parse_resource_id(resource_id: str) -> Tuple[str, str]:
    """Return (resource group, resource name) from an ARM resource id"""
    parts = resource_id.strip("/").split("/")
    if len(parts) < 8 or parts[2].lower() != "resourcegroups":
        raise ValueError(f"Not an ARM resource id: {resource_id}")
    return parts[3], parts[-1]


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def to_descriptor(vm: Any) -> VirtualMachineDescriptor:
    """Convert an azure-mgmt-compute VirtualMachine into a descriptor"""

    storage_profile = getattr(vm, "storage_profile", None)
    os_disk = getattr(storage_profile, "os_disk", None)
    network_profile = getattr(vm, "network_profile", None)
    security_profile = getattr(vm, "security_profile", None)
    uefi_settings = getattr(security_profile, "uefi_settings", None)
    hardware_profile = getattr(vm, "hardware_profile", None)

    def _disk_reference(disk: Any) -> DiskReference:
        managed_disk = getattr(disk, "managed_disk", None)
        return DiskReference(
            managed_disk_id=getattr(managed_disk, "id", None),
            size_gb=getattr(disk, "disk_size_gb", None),
            name=getattr(disk, "name", None),
            lun=getattr(disk, "lun", None)
        )

    vm_id = vm.id or ""
    try:
        resource_group = parse_resource_id(vm_id)[0]
    except ValueError:
        resource_group = ""

    return VirtualMachineDescriptor(
        vm_id=vm_id,
        name=vm.name or "",
        location=vm.location or "",
        resource_group=resource_group,
        vm_size=_enum_value(getattr(hardware_profile, "vm_size", None)) or "",
        os_type=_enum_value(getattr(os_disk, "os_type", None)),
        network_interface_ids=tuple(
            nic.id for nic in (getattr(network_profile, "network_interfaces", None) or []) if nic.id
        ),
        os_disk=_disk_reference(os_disk) if os_disk is not None else DiskReference(),
        data_disks=tuple(
            _disk_reference(disk) for disk in (getattr(storage_profile, "data_disks", None) or [])
        ),
        security_type=_enum_value(getattr(security_profile, "security_type", None)),
        secure_boot_enabled=getattr(uefi_settings, "secure_boot_enabled", None)
    )


class AzureVirtualMachineStore(IVirtualMachineStore):
    """VMs via azure-mgmt-compute"""

    def __init__(self, compute_client):
        self.logger = setup_logger(self.__class__.__name__)
        self.compute_client = compute_client

    def list_virtual_machines(self, resource_group: Optional[str] = None) -> List[VirtualMachineDescriptor]:
        if resource_group:
            vms = self.compute_client.virtual_machines.list(resource_group)
        else:
            vms = self.compute_client.virtual_machines.list_all()
        return [to_descriptor(vm) for vm in vms]

    def get_virtual_machine(self, vm_id: str) -> Optional[VirtualMachineDescriptor]:
        resource_group, name = parse_resource_id(vm_id)
        try:
            vm = self.compute_client.virtual_machines.get(resource_group, name)
        except ResourceNotFoundError:
            self.logger.debug(f"VM not found: {vm_id}")
            return None
        return to_descriptor(vm)


class AzureDiskStore(IDiskStore):
    """Managed disks via azure-mgmt-compute"""

    def __init__(self, compute_client):
        self.compute_client = compute_client

    def get_disk_size_gb(self, disk_id: str) -> Optional[Number]:
        resource_group, name = parse_resource_id(disk_id)
        disk = self.compute_client.disks.get(resource_group, name)
        return disk.disk_size_gb


class AzureSizeCatalog(ISizeCatalog):
    """VM sizes per location, listed once per location and cached"""

    def __init__(self, compute_client):
        self.logger = setup_logger(self.__class__.__name__)
        self.compute_client = compute_client
        self._sizes: Dict[str, Dict[str, SizeProfile]] = {}
        self._lock = threading.Lock()

    def get_size(self, location: str, size_name: str) -> Optional[SizeProfile]:
        key = location.lower()
        with self._lock:
            if key not in self._sizes:
                self.logger.debug(f"Listing VM sizes for {location}")
                self._sizes[key] = {
                    size.name.lower(): SizeProfile(cores=size.number_of_cores, memory_mb=size.memory_in_mb)
                    for size in self.compute_client.virtual_machine_sizes.list(location)
                    if size.name
                }
            sizes = self._sizes[key]
        return sizes.get(size_name.lower())


class AzureSkuCatalog(ISkuCatalog):
    """Resource SKUs per location; slow, so listed once per location and cached"""

    def __init__(self, compute_client):
        self.logger = setup_logger(self.__class__.__name__)
        self.compute_client = compute_client
        self._capabilities: Dict[str, Dict[str, Dict[str, str]]] = {}
        self._lock = threading.Lock()

    def get_capabilities(self, location: str, size_name: str) -> Dict[str, str]:
        key = location.lower()
        with self._lock:
            if key not in self._capabilities:
                self.logger.info(f"Listing resource SKUs for {location} (this may take 1-2 minutes)...")
                catalog = {}
                for sku in self.compute_client.resource_skus.list(filter=f"location eq '{location}'"):
                    if sku.resource_type != VM_SKU_RESOURCE_TYPE or not sku.name:
                        continue
                    catalog.setdefault(sku.name.lower(), {
                        capability.name: capability.value
                        for capability in (sku.capabilities or [])
                    })
                self._capabilities[key] = catalog
            catalog = self._capabilities[key]
        return dict(catalog.get(size_name.lower(), {}))


class AzureNetworkStore(INetworkStore):
    """Network interfaces via azure-mgmt-network"""

    def __init__(self, network_client):
        self.network_client = network_client

    def get_private_ip_addresses(self, nic_id: str) -> List[str]:
        resource_group, name = parse_resource_id(nic_id)
        nic = self.network_client.network_interfaces.get(resource_group, name)
        return [
            ip_config.private_ip_address
            for ip_config in (nic.ip_configurations or [])
            if ip_config.private_ip_address
        ]


class AzureMetricsService(IMetricsService):
    """Platform metrics via azure-mgmt-monitor"""

    def __init__(self, monitor_client):
        self.monitor_client = monitor_client

    def query(
        self,
        resource_id: str,
        metric_names: Sequence[str],
        window: TimeWindow,
        interval: str,
        aggregations: Sequence[str]
    ) -> Dict[str, List[MetricSample]]:
        metrics_data = self.monitor_client.metrics.list(
            resource_uri=resource_id,
            timespan=window.timespan,
            interval=interval,
            metricnames=",".join(metric_names),
            aggregation=",".join(aggregations)
        )

        result: Dict[str, List[MetricSample]] = {}
        for metric in metrics_data.value or []:
            samples = []
            # No dimension filter, so the first series is the whole VM
            if metric.timeseries:
                for data_point in metric.timeseries[0].data or []:
                    samples.append(MetricSample(
                        timestamp=data_point.time_stamp,
                        average=data_point.average,
                        maximum=data_point.maximum
                    ))
            samples.sort(key=lambda sample: (sample.timestamp is None, sample.timestamp))
            result[metric.name.value] = samples
        return result


class AzureLogQueryService(ILogQueryService):
    """Log Analytics queries via azure-monitor-query"""

    def __init__(self, logs_client):
        self.logger = setup_logger(self.__class__.__name__)
        self.logs_client = logs_client

    def query(self, workspace_resource_id: str, query: str, window: TimeWindow) -> List[List[Any]]:
        response = self.logs_client.query_resource(
            workspace_resource_id,
            query,
            timespan=(window.start, window.end)
        )

        if response.status == LogsQueryStatus.SUCCESS:
            tables = response.tables
        else:
            self.logger.debug(f"Partial Log Analytics result: {response.partial_error}")
            tables = response.partial_data

        if not tables:
            return []
        return [list(row) for row in tables[0].rows]


class AzureWorkspaceResolver(IWorkspaceResolver):
    """Resolve a Log Analytics workspace resource id via azure-mgmt-resource"""

    def __init__(self, resource_client):
        self.logger = setup_logger(self.__class__.__name__)
        self.resource_client = resource_client

    def resolve(self, workspace_name: str, resource_group: str) -> Optional[str]:
        try:
            workspace = self.resource_client.resources.get(
                resource_group_name=resource_group,
                resource_provider_namespace=WORKSPACE_PROVIDER,
                parent_resource_path="",
                resource_type=WORKSPACE_TYPE,
                resource_name=workspace_name,
                api_version=WORKSPACE_API_VERSION
            )
        except ResourceNotFoundError:
            self.logger.debug(f"Workspace {workspace_name} not found in {resource_group}")
            return None
        return workspace.id
