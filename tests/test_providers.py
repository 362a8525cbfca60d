"""Tests for the Azure SDK adapters, using SDK-shaped mocks"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import ResourceNotFoundError
from azure.monitor.query import LogsQueryStatus

from azure_migrate_inventory.core.inventory import VMInventory
from azure_migrate_inventory.core.models import InventoryConfiguration, TimeWindow
from azure_migrate_inventory.providers.azure import (
    AzureDiskStore,
    AzureLogQueryService,
    AzureMetricsService,
    AzureNetworkStore,
    AzureSizeCatalog,
    AzureSkuCatalog,
    AzureVirtualMachineStore,
    AzureWorkspaceResolver,
    parse_resource_id,
    to_descriptor
)
from azure_migrate_inventory.providers.factory import build_inventory

from fakes import disk_resource_id, nic_resource_id, vm_resource_id

WINDOW = TimeWindow.ending_now(168, datetime(2024, 1, 8, tzinfo=timezone.utc))


def sdk_vm(name="vm-web-01", security_type=None, secure_boot=None, os_disk_id=None, data_disks=()):
    return SimpleNamespace(
        id=vm_resource_id(name),
        name=name,
        location="westeurope",
        hardware_profile=SimpleNamespace(vm_size="Standard_D2s_v3"),
        storage_profile=SimpleNamespace(
            os_disk=SimpleNamespace(
                os_type=SimpleNamespace(value="Windows"),
                managed_disk=SimpleNamespace(id=os_disk_id) if os_disk_id else None,
                disk_size_gb=127,
                name=f"{name}-os"
            ),
            data_disks=list(data_disks)
        ),
        network_profile=SimpleNamespace(network_interfaces=[SimpleNamespace(id=nic_resource_id(f"{name}-nic"))]),
        security_profile=SimpleNamespace(
            security_type=security_type,
            uefi_settings=SimpleNamespace(secure_boot_enabled=secure_boot)
        ) if security_type or secure_boot is not None else None
    )


class TestParseResourceId:

    def test_resource_group_and_name(self):
        assert parse_resource_id(disk_resource_id("os-disk", "RG-Prod")) == ("RG-Prod", "os-disk")

    def test_rejects_non_arm_ids(self):
        with pytest.raises(ValueError):
            parse_resource_id("not-a-resource-id")


class TestToDescriptor:

    def test_full_vm(self):
        data_disk = SimpleNamespace(managed_disk=SimpleNamespace(id=disk_resource_id("data")), disk_size_gb=None, name="data", lun=0)
        vm = sdk_vm(security_type="TrustedLaunch", secure_boot=True, os_disk_id=disk_resource_id("os"), data_disks=[data_disk])

        descriptor = to_descriptor(vm)

        assert descriptor.name == "vm-web-01"
        assert descriptor.resource_group == "rg-app"
        assert descriptor.vm_size == "Standard_D2s_v3"
        assert descriptor.os_type == "Windows"
        assert descriptor.os_disk.managed_disk_id == disk_resource_id("os")
        assert descriptor.os_disk.size_gb == 127
        assert descriptor.data_disks[0].managed_disk_id == disk_resource_id("data")
        assert descriptor.network_interface_ids == (nic_resource_id("vm-web-01-nic"),)
        assert descriptor.security_type == "TrustedLaunch"
        assert descriptor.secure_boot_enabled is True

    def test_sparse_vm(self):
        vm = SimpleNamespace(id=None, name="bare", location=None)

        descriptor = to_descriptor(vm)

        assert descriptor.name == "bare"
        assert descriptor.os_type is None
        assert descriptor.data_disks == ()
        assert descriptor.network_interface_ids == ()
        assert descriptor.security_type is None


class TestComputeStores:

    def test_list_scoped_and_unscoped(self):
        client = MagicMock()
        client.virtual_machines.list.return_value = [sdk_vm("a")]
        client.virtual_machines.list_all.return_value = [sdk_vm("b"), sdk_vm("c")]
        store = AzureVirtualMachineStore(client)

        assert [vm.name for vm in store.list_virtual_machines("rg-app")] == ["a"]
        assert [vm.name for vm in store.list_virtual_machines()] == ["b", "c"]
        client.virtual_machines.list.assert_called_once_with("rg-app")

    def test_get_missing_vm_is_none(self):
        client = MagicMock()
        client.virtual_machines.get.side_effect = ResourceNotFoundError("gone")

        assert AzureVirtualMachineStore(client).get_virtual_machine(vm_resource_id("gone")) is None

    def test_disk_size(self):
        client = MagicMock()
        client.disks.get.return_value = SimpleNamespace(disk_size_gb=256)

        assert AzureDiskStore(client).get_disk_size_gb(disk_resource_id("data")) == 256
        client.disks.get.assert_called_once_with("rg-app", "data")

    def test_size_catalog_lists_once_per_location(self):
        client = MagicMock()
        client.virtual_machine_sizes.list.return_value = [
            SimpleNamespace(name="Standard_D2s_v3", number_of_cores=2, memory_in_mb=8192)
        ]
        catalog = AzureSizeCatalog(client)

        first = catalog.get_size("westeurope", "standard_d2s_v3")
        second = catalog.get_size("westeurope", "Standard_D4s_v3")

        assert (first.cores, first.memory_mb) == (2, 8192)
        assert second is None
        client.virtual_machine_sizes.list.assert_called_once_with("westeurope")

    def test_sku_catalog_filters_virtual_machines(self):
        client = MagicMock()
        client.resource_skus.list.return_value = [
            SimpleNamespace(resource_type="disks", name="Standard_E2bs_v5", capabilities=[]),
            SimpleNamespace(
                resource_type="virtualMachines",
                name="Standard_E2bs_v5",
                capabilities=[SimpleNamespace(name="vCPUs", value="2"), SimpleNamespace(name="MemoryGB", value="16")]
            ),
        ]
        catalog = AzureSkuCatalog(client)

        capabilities = catalog.get_capabilities("westeurope", "Standard_E2bs_v5")
        catalog.get_capabilities("westeurope", "Standard_Other")

        assert capabilities == {"vCPUs": "2", "MemoryGB": "16"}
        client.resource_skus.list.assert_called_once_with(filter="location eq 'westeurope'")


class TestNetworkStore:

    def test_private_ips(self):
        client = MagicMock()
        client.network_interfaces.get.return_value = SimpleNamespace(ip_configurations=[
            SimpleNamespace(private_ip_address=None),
            SimpleNamespace(private_ip_address="10.0.0.4"),
        ])

        assert AzureNetworkStore(client).get_private_ip_addresses(nic_resource_id("nic")) == ["10.0.0.4"]


class TestMetricsService:

    def test_first_timeseries_sorted(self):
        t1 = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
        t2 = datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc)
        metric = SimpleNamespace(
            name=SimpleNamespace(value="Percentage CPU"),
            timeseries=[SimpleNamespace(data=[
                SimpleNamespace(time_stamp=t2, average=20.0, maximum=40.0),
                SimpleNamespace(time_stamp=t1, average=10.0, maximum=None),
            ])]
        )
        client = MagicMock()
        client.metrics.list.return_value = SimpleNamespace(value=[metric])

        result = AzureMetricsService(client).query("vm-id", ["Percentage CPU"], WINDOW, "PT5M", ["Average", "Maximum"])

        assert [s.average for s in result["Percentage CPU"]] == [10.0, 20.0]
        kwargs = client.metrics.list.call_args.kwargs
        assert kwargs['interval'] == "PT5M"
        assert kwargs['aggregation'] == "Average,Maximum"
        assert kwargs['timespan'] == WINDOW.timespan

    def test_metric_without_timeseries(self):
        metric = SimpleNamespace(name=SimpleNamespace(value="Network In Total"), timeseries=[])
        client = MagicMock()
        client.metrics.list.return_value = SimpleNamespace(value=[metric])

        result = AzureMetricsService(client).query("vm-id", ["Network In Total"], WINDOW, "PT5M", ["Average"])

        assert result == {"Network In Total": []}


class TestLogQueryService:

    def test_success_rows(self):
        client = MagicMock()
        client.query_resource.return_value = SimpleNamespace(
            status=LogsQueryStatus.SUCCESS,
            tables=[SimpleNamespace(rows=[(41.0, 77.5, 88.0)])]
        )

        rows = AzureLogQueryService(client).query("workspace-id", "Perf", WINDOW)

        assert rows == [[41.0, 77.5, 88.0]]
        assert client.query_resource.call_args.kwargs['timespan'] == (WINDOW.start, WINDOW.end)

    def test_partial_result_uses_partial_data(self):
        client = MagicMock()
        client.query_resource.return_value = SimpleNamespace(
            status=LogsQueryStatus.PARTIAL,
            partial_error="timeout",
            partial_data=[SimpleNamespace(rows=[(1.0, 2.0, 3.0)])]
        )

        assert AzureLogQueryService(client).query("workspace-id", "Perf", WINDOW) == [[1.0, 2.0, 3.0]]

    def test_no_tables(self):
        client = MagicMock()
        client.query_resource.return_value = SimpleNamespace(status=LogsQueryStatus.SUCCESS, tables=[])

        assert AzureLogQueryService(client).query("workspace-id", "Perf", WINDOW) == []


class TestWorkspaceResolver:

    def test_resolves_id(self):
        client = MagicMock()
        client.resources.get.return_value = SimpleNamespace(id="/subscriptions/x/workspaces/law")

        assert AzureWorkspaceResolver(client).resolve("law", "rg-logs") == "/subscriptions/x/workspaces/law"
        kwargs = client.resources.get.call_args.kwargs
        assert kwargs['resource_provider_namespace'] == "Microsoft.OperationalInsights"
        assert kwargs['resource_type'] == "workspaces"

    def test_not_found_is_none(self):
        client = MagicMock()
        client.resources.get.side_effect = ResourceNotFoundError("nope")

        assert AzureWorkspaceResolver(client).resolve("law", "rg-logs") is None


def test_build_inventory_wires_clients():
    clients = {name: MagicMock() for name in ('resource', 'compute', 'network', 'monitor', 'logs')}

    inventory = build_inventory(InventoryConfiguration(subscription_id="sub"), clients)

    assert isinstance(inventory, VMInventory)
    assert inventory.vm_store.compute_client is clients['compute']
    assert inventory.workspace_resolver.resource_client is clients['resource']
    assert inventory.row_builder.utilization_collector.log_query_service.logs_client is clients['logs']
