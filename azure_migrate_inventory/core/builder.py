"""Assembly of one VM's inventory row"""

from typing import Any, Callable, List, Optional, TypeVar

from .interfaces import INetworkStore
from .models import (
    BootType,
    DiskIOProfile,
    DiskProfile,
    InventoryRow,
    NetworkThroughput,
    OSFamily,
    RunContext,
    SizeProfile,
    VirtualMachineDescriptor
)
from ..collectors.disk_accountant import DiskAccountant
from ..collectors.size_resolver import SizeResolver
from ..collectors.utilization_collector import UtilizationCollector
from ..collectors.vm_detail import VirtualMachineDetailLoader
from ..utils.logger import setup_logger

T = TypeVar("T")

UEFI_SECURITY_TYPES = ("TrustedLaunch", "ConfidentialVM")

# Names must match the Azure Migrate supported OS list
WINDOWS_OS_NAME = "Microsoft Windows Server 2019 (64-bit)"
LINUX_OS_NAME = "Ubuntu Linux"
OS_ARCHITECTURE = "x64"


class InventoryRowBuilder:
    """Build a row for one VM; every step degrades independently and nothing raises"""

    def __init__(
        self,
        size_resolver: SizeResolver,
        disk_accountant: DiskAccountant,
        utilization_collector: UtilizationCollector,
        network_store: INetworkStore
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.size_resolver = size_resolver
        self.disk_accountant = disk_accountant
        self.utilization_collector = utilization_collector
        self.network_store = network_store

    def build(self, vm: VirtualMachineDescriptor, context: RunContext) -> InventoryRow:
        row = InventoryRow(server_name=vm.name or "", vm_id=vm.vm_id)
        detail_loader = VirtualMachineDetailLoader(self.disk_accountant.vm_store, vm)

        self.logger.debug(f"  VM ID: {vm.vm_id}")
        self.logger.debug(f"  Location: {vm.location}")
        self.logger.debug(f"  Size: {vm.vm_size}")
        self.logger.debug(f"  OS Type: {vm.os_type}")

        # Compute
        size = self._guard(row, "size", lambda: self.size_resolver.resolve(vm.vm_size, vm.location), SizeProfile.unknown())
        row.cores = size.cores
        row.memory_mb = size.memory_mb
        if size.is_complete and size.source == "size_catalog":
            self.logger.info(f"  Cores: {size.cores}, Memory: {size.memory_mb}MB")

        # Disks
        os_disk = self._guard(row, "os disk", lambda: self.disk_accountant.account_os_disk(vm, detail_loader), DiskProfile())
        data_disks: List[DiskProfile] = self._guard(
            row, "data disks", lambda: self.disk_accountant.account_data_disks(vm), []
        )
        row.number_of_disks = self.disk_accountant.disk_count(vm)
        row.disk1_size_gb = os_disk.size_gb
        row.disk2_size_gb = data_disks[0].size_gb if data_disks else None
        row.storage_in_use_gb = self.disk_accountant.total_storage([os_disk] + data_disks)
        self.logger.info(
            f"  Disks: {row.number_of_disks} total "
            f"(OS disk: {_display(os_disk.size_gb)}GB, storage in use: {_display(row.storage_in_use_gb)}GB)"
        )
        if vm.data_disks:
            self.logger.info(f"  Data disk 1 size: {_display(row.disk2_size_gb)}GB")

        # Network
        row.ip_address = self._guard(row, "ip address", lambda: self._resolve_ip(vm), "")
        row.network_adapters = len(vm.network_interface_ids)
        self.logger.info(f"  Network adapters: {row.network_adapters}")

        # Utilization
        row.cpu_utilization = self._guard(
            row, "cpu", lambda: self.utilization_collector.collect_cpu(vm.vm_id, context), 0.0
        )
        row.memory_utilization = self._guard(
            row, "memory", lambda: self.utilization_collector.collect_memory(vm, context), None
        )
        if row.memory_utilization is None:
            self.logger.info(f"  Memory utilization ({context.policy.value}): N/A")
        row.network = self._guard(
            row, "network throughput", lambda: self.utilization_collector.collect_network(vm.vm_id, context),
            NetworkThroughput()
        )
        row.disk_io = self._guard(
            row, "disk io", lambda: self.utilization_collector.collect_disk_io(vm.vm_id, context), DiskIOProfile()
        )

        # Firmware
        row.boot_type = self._guard(
            row, "boot type", lambda: determine_boot_type(self._security_source(vm, detail_loader)).value,
            BootType.BIOS.value
        )
        self.logger.info(f"  Boot type: {row.boot_type}")

        row.os_name, row.os_architecture = os_labels(vm.os_family)
        row.os_version = ""

        return row

    def _resolve_ip(self, vm: VirtualMachineDescriptor) -> str:
        """First private IP of the first NIC, best effort"""
        self.logger.debug("  Fetching network information...")

        if not vm.network_interface_ids:
            self.logger.warning("  No NIC found for VM")
            return ""

        nic_id = vm.network_interface_ids[0]
        self.logger.debug(f"  NIC ID: {nic_id}")
        try:
            addresses = self.network_store.get_private_ip_addresses(nic_id)
        except Exception as e:
            self.logger.warning(f"  Could not fetch NIC details: {e}")
            return ""

        address = next((ip for ip in addresses if ip), "")
        if address:
            self.logger.info(f"  IP Address: {address}")
        else:
            self.logger.warning("  IP Address not found for NIC")
        return address

    def _security_source(
        self,
        vm: VirtualMachineDescriptor,
        detail_loader: VirtualMachineDetailLoader
    ) -> VirtualMachineDescriptor:
        """Record carrying the security profile; the VM detail fetch is shared with disk resolution"""
        if vm.security_type is not None or vm.secure_boot_enabled is not None:
            return vm
        return detail_loader.get() or vm

    def _guard(self, row: InventoryRow, step: str, func: Callable[[], T], default: T) -> T:
        """Run one step, degrading to default on any failure"""
        try:
            result = func()
        except Exception as e:
            message = f"{step} lookup failed for {row.server_name}: {e}"
            self.logger.warning(f"  {message}")
            row.warnings.append(message)
            return default
        return default if result is None and default is not None else result


def determine_boot_type(vm: VirtualMachineDescriptor) -> BootType:
    """UEFI for Trusted Launch / Confidential VMs or when secure boot is on"""
    if vm.security_type in UEFI_SECURITY_TYPES or vm.secure_boot_enabled is True:
        return BootType.UEFI
    return BootType.BIOS


def os_labels(os_family: OSFamily) -> tuple:
    """Return (OS name, architecture) accepted by the Azure Migrate import"""
    if os_family == OSFamily.WINDOWS:
        return WINDOWS_OS_NAME, OS_ARCHITECTURE
    return LINUX_OS_NAME, OS_ARCHITECTURE


def _display(value: Optional[Any]) -> str:
    return "N/A" if value is None else str(value)
