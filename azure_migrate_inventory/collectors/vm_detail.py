"""Lazy, fetch-once access to a VM's full detail record"""

from typing import Optional

from ..core.interfaces import IVirtualMachineStore
from ..core.models import VirtualMachineDescriptor
from ..utils.logger import setup_logger


class VirtualMachineDetailLoader:
    """Fetches the VM detail record on first use and reuses it afterwards.

    A failed fetch is remembered as None so the lookup is not repeated.
    """

    def __init__(self, vm_store: IVirtualMachineStore, vm: VirtualMachineDescriptor):
        self.logger = setup_logger(self.__class__.__name__)
        self.vm_store = vm_store
        self.vm = vm
        self._detail: Optional[VirtualMachineDescriptor] = None
        self._fetched = False

    @property
    def fetched(self) -> bool:
        return self._fetched

    def get(self) -> Optional[VirtualMachineDescriptor]:
        if self._fetched:
            return self._detail

        self._fetched = True
        if not self.vm.vm_id:
            return None

        self.logger.debug(f"  Fetching VM details for {self.vm.name}...")
        try:
            self._detail = self.vm_store.get_virtual_machine(self.vm.vm_id)
        except Exception as e:
            self.logger.warning(f"  Could not fetch VM details for {self.vm.name}: {e}")
            self._detail = None

        return self._detail
