"""In-memory fakes for every data source interface, so the collectors,
the row builder and the orchestrator can run without Azure.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from azure_migrate_inventory.collectors.disk_accountant import DiskAccountant
from azure_migrate_inventory.collectors.size_resolver import SizeResolver
from azure_migrate_inventory.collectors.utilization_collector import UtilizationCollector
from azure_migrate_inventory.core.builder import InventoryRowBuilder
from azure_migrate_inventory.core.interfaces import (
    IDiskStore,
    ILogQueryService,
    IMetricsService,
    INetworkStore,
    ISizeCatalog,
    ISkuCatalog,
    IVirtualMachineStore,
    IWorkspaceResolver
)
from azure_migrate_inventory.core.models import (
    AggregationPolicy,
    DiskReference,
    MetricSample,
    RunContext,
    SizeProfile,
    TimeWindow,
    VirtualMachineDescriptor
)

NOW = datetime(2024, 1, 8, 12, 0, 0, tzinfo=timezone.utc)

SUBSCRIPTION = "/subscriptions/00000000-0000-0000-0000-000000000000"


def vm_resource_id(name: str, resource_group: str = "rg-app") -> str:
    return f"{SUBSCRIPTION}/resourceGroups/{resource_group}/providers/Microsoft.Compute/virtualMachines/{name}"


def disk_resource_id(name: str, resource_group: str = "rg-app") -> str:
    return f"{SUBSCRIPTION}/resourceGroups/{resource_group}/providers/Microsoft.Compute/disks/{name}"


def nic_resource_id(name: str, resource_group: str = "rg-app") -> str:
    return f"{SUBSCRIPTION}/resourceGroups/{resource_group}/providers/Microsoft.Network/networkInterfaces/{name}"


def make_vm(
    name: str = "vm-app-01",
    os_type: Optional[str] = "Linux",
    vm_size: str = "Standard_D4s_v3",
    location: str = "westeurope",
    os_disk: Optional[DiskReference] = None,
    data_disks=(),
    nics=None,
    security_type: Optional[str] = None,
    secure_boot_enabled: Optional[bool] = None
) -> VirtualMachineDescriptor:
    return VirtualMachineDescriptor(
        vm_id=vm_resource_id(name),
        name=name,
        location=location,
        resource_group="rg-app",
        vm_size=vm_size,
        os_type=os_type,
        network_interface_ids=tuple(nics if nics is not None else [nic_resource_id(f"{name}-nic")]),
        os_disk=os_disk if os_disk is not None else DiskReference(managed_disk_id=disk_resource_id(f"{name}-osdisk")),
        data_disks=tuple(data_disks),
        security_type=security_type,
        secure_boot_enabled=secure_boot_enabled
    )


def samples(values, maxima=None) -> List[MetricSample]:
    maxima = maxima if maxima is not None else values
    return [MetricSample(timestamp=NOW, average=avg, maximum=peak) for avg, peak in zip(values, maxima)]


class FakeSizeCatalog(ISizeCatalog):
    def __init__(self, sizes: Optional[Dict[str, SizeProfile]] = None, error: Optional[Exception] = None):
        self.sizes = sizes or {}
        self.error = error
        self.calls = 0

    def get_size(self, location, size_name):
        self.calls += 1
        if self.error:
            raise self.error
        return self.sizes.get(size_name)


class FakeSkuCatalog(ISkuCatalog):
    def __init__(self, capabilities: Optional[Dict[str, Dict[str, str]]] = None, error: Optional[Exception] = None):
        self.capabilities = capabilities or {}
        self.error = error
        self.calls = 0

    def get_capabilities(self, location, size_name):
        self.calls += 1
        if self.error:
            raise self.error
        return self.capabilities.get(size_name, {})


class FakeVirtualMachineStore(IVirtualMachineStore):
    def __init__(self, vms=None, details=None, list_error: Optional[Exception] = None):
        self.vms = list(vms or [])
        self.details = details or {}
        self.list_error = list_error
        self.get_calls: List[str] = []
        self._lock = threading.Lock()

    def list_virtual_machines(self, resource_group=None):
        if self.list_error:
            raise self.list_error
        return [vm for vm in self.vms if not resource_group or vm.resource_group == resource_group]

    def get_virtual_machine(self, vm_id):
        with self._lock:
            self.get_calls.append(vm_id)
        return self.details.get(vm_id)


class FakeDiskStore(IDiskStore):
    def __init__(self, sizes=None, error: Optional[Exception] = None):
        self.sizes = sizes or {}
        self.error = error

    def get_disk_size_gb(self, disk_id):
        if self.error:
            raise self.error
        if disk_id not in self.sizes:
            raise LookupError(f"disk not found: {disk_id}")
        return self.sizes[disk_id]


class FakeNetworkStore(INetworkStore):
    def __init__(self, addresses=None, error: Optional[Exception] = None):
        self.addresses = addresses or {}
        self.error = error

    def get_private_ip_addresses(self, nic_id):
        if self.error:
            raise self.error
        return self.addresses.get(nic_id, [])


class FakeMetricsService(IMetricsService):
    """Serves canned series keyed by (resource id, metric name); '*' matches any VM"""

    def __init__(self, series=None, error: Optional[Exception] = None):
        self.series = series or {}
        self.error = error
        self.queries: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def query(self, resource_id, metric_names, window, interval, aggregations):
        with self._lock:
            self.queries.append({
                'resource_id': resource_id,
                'metric_names': list(metric_names),
                'interval': interval,
                'aggregations': list(aggregations),
            })
        if self.error:
            raise self.error
        result = {}
        for name in metric_names:
            data = self.series.get((resource_id, name), self.series.get(("*", name)))
            if data is not None:
                result[name] = data
        return result


class FakeLogQueryService(ILogQueryService):
    """Returns rows for the first table name found in the query text.

    `error` fails every query; `failing_tables` fails only queries against those tables.
    """

    def __init__(self, rows_by_table=None, error: Optional[Exception] = None, failing_tables=None):
        self.rows_by_table = rows_by_table or {}
        self.error = error
        self.failing_tables = failing_tables or {}
        self.queries: List[str] = []

    def query(self, workspace_resource_id, query, window):
        self.queries.append(query)
        if self.error:
            raise self.error
        table = query.split("\n", 1)[0].strip()
        if table in self.failing_tables:
            raise self.failing_tables[table]
        return self.rows_by_table.get(table, [])


class FakeWorkspaceResolver(IWorkspaceResolver):
    def __init__(self, workspace_id: Optional[str] = None):
        self.workspace_id = workspace_id
        self.calls = []

    def resolve(self, workspace_name, resource_group):
        self.calls.append((workspace_name, resource_group))
        return self.workspace_id


def make_context(policy=AggregationPolicy.P95, workspace_resource_id=None, lookback_hours=168) -> RunContext:
    return RunContext(
        policy=policy,
        window=TimeWindow.ending_now(lookback_hours, NOW),
        workspace_resource_id=workspace_resource_id
    )


def make_builder(
    size_catalog=None,
    sku_catalog=None,
    disk_store=None,
    vm_store=None,
    metrics_service=None,
    log_query_service=None,
    network_store=None
) -> InventoryRowBuilder:
    return InventoryRowBuilder(
        size_resolver=SizeResolver(size_catalog or FakeSizeCatalog(), sku_catalog or FakeSkuCatalog()),
        disk_accountant=DiskAccountant(disk_store or FakeDiskStore(), vm_store or FakeVirtualMachineStore()),
        utilization_collector=UtilizationCollector(metrics_service or FakeMetricsService(), log_query_service),
        network_store=network_store or FakeNetworkStore()
    )
