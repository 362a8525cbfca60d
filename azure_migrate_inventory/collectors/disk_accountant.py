"""Disk sizing, counting and storage totals for a VM"""

from typing import List, Optional, Sequence

from ..core.interfaces import IDiskStore, IVirtualMachineStore
from ..core.models import (
    DiskProfile,
    DiskReference,
    VirtualMachineDescriptor,
    Number
)
from ..utils.logger import setup_logger
from .vm_detail import VirtualMachineDetailLoader


class DiskAccountant:
    """Resolve disk sizes from managed disk resources with descriptor fallback"""

    def __init__(self, disk_store: IDiskStore, vm_store: IVirtualMachineStore):
        self.logger = setup_logger(self.__class__.__name__)
        self.disk_store = disk_store
        self.vm_store = vm_store

    def account_os_disk(
        self,
        vm: VirtualMachineDescriptor,
        detail_loader: Optional[VirtualMachineDetailLoader] = None
    ) -> DiskProfile:
        """Resolve the OS disk size.

        Order: managed disk from the descriptor, managed disk from the VM detail
        record, then the size embedded in the descriptor.
        """
        disk_id = vm.os_disk.managed_disk_id
        self.logger.debug(f"  OS Disk ID from VM: {disk_id or 'not found'}")

        if not disk_id:
            loader = detail_loader or VirtualMachineDetailLoader(self.vm_store, vm)
            detail = loader.get()
            if detail is not None:
                disk_id = detail.os_disk.managed_disk_id
            self.logger.debug(f"  OS Disk ID from VM details: {disk_id or 'not found'}")

        profile = self._account_disk(DiskReference(
            managed_disk_id=disk_id,
            size_gb=vm.os_disk.size_gb,
            name=vm.os_disk.name
        ))

        if not profile.is_resolved:
            self.logger.warning(f"  Could not determine OS disk size for {vm.name}, but counting it as 1 disk")
        return profile

    def account_data_disks(self, vm: VirtualMachineDescriptor) -> List[DiskProfile]:
        """Resolve every declared data disk, in declaration order"""
        return [self._account_disk(reference) for reference in vm.data_disks]

    def disk_count(self, vm: VirtualMachineDescriptor) -> int:
        """The OS disk plus every declared data disk, resolved or not"""
        return 1 + len(vm.data_disks)

    def total_storage(self, profiles: Sequence[DiskProfile]) -> Optional[Number]:
        """Sum of resolved disk sizes; None when no disk resolved"""
        sizes = [profile.size_gb for profile in profiles if profile.is_resolved]
        if not sizes:
            return None
        return sum(sizes)

    def _account_disk(self, reference: DiskReference) -> DiskProfile:
        if reference.managed_disk_id:
            try:
                size = self.disk_store.get_disk_size_gb(reference.managed_disk_id)
                self.logger.debug(f"  Disk size from disk resource: {size if size is not None else 'not found'}")
                if size is not None:
                    return DiskProfile(size_gb=size, disk_id=reference.managed_disk_id, source="disk")
            except Exception as e:
                self.logger.warning(f"  Failed to fetch disk {reference.managed_disk_id}: {e}")

        if reference.size_gb is not None:
            self.logger.debug(f"  Disk size from VM record: {reference.size_gb}")
            return DiskProfile(size_gb=reference.size_gb, disk_id=reference.managed_disk_id, source="descriptor")

        return DiskProfile(disk_id=reference.managed_disk_id)
