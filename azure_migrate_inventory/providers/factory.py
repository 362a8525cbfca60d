"""Wiring of Azure clients into an inventory run"""

from typing import Any, Dict

from ..collectors.disk_accountant import DiskAccountant
from ..collectors.size_resolver import SizeResolver
from ..collectors.utilization_collector import UtilizationCollector
from ..core.builder import InventoryRowBuilder
from ..core.inventory import VMInventory
from ..core.models import InventoryConfiguration
from .azure import (
    AzureDiskStore,
    AzureLogQueryService,
    AzureMetricsService,
    AzureNetworkStore,
    AzureSizeCatalog,
    AzureSkuCatalog,
    AzureVirtualMachineStore,
    AzureWorkspaceResolver
)


def build_inventory(config: InventoryConfiguration, clients: Dict[str, Any]) -> VMInventory:
    """Create a VMInventory backed by the Azure clients of one subscription"""

    compute_client = clients['compute']
    vm_store = AzureVirtualMachineStore(compute_client)

    row_builder = InventoryRowBuilder(
        size_resolver=SizeResolver(AzureSizeCatalog(compute_client), AzureSkuCatalog(compute_client)),
        disk_accountant=DiskAccountant(AzureDiskStore(compute_client), vm_store),
        utilization_collector=UtilizationCollector(
            AzureMetricsService(clients['monitor']),
            AzureLogQueryService(clients['logs']) if clients.get('logs') is not None else None
        ),
        network_store=AzureNetworkStore(clients['network'])
    )

    return VMInventory(
        config=config,
        vm_store=vm_store,
        row_builder=row_builder,
        workspace_resolver=AzureWorkspaceResolver(clients['resource'])
    )
