"""Main orchestrator for the Azure Migrate VM inventory"""

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .builder import InventoryRowBuilder
from .interfaces import IVirtualMachineStore, IWorkspaceResolver
from .models import (
    InventoryConfiguration,
    InventoryResult,
    InventoryRow,
    RunContext,
    TimeWindow,
    VirtualMachineDescriptor
)
from ..output.csv_writer import InventoryCsvWriter
from ..utils.logger import setup_logger, vm_log_context

BANNER = "=========================================="
SEPARATOR = "----------------------------------------"

ProgressCallback = Callable[[int, int, InventoryRow], None]


class VMInventory:
    """Discover VMs, build one row per VM in parallel, and write the import CSV"""

    def __init__(
        self,
        config: InventoryConfiguration,
        vm_store: IVirtualMachineStore,
        row_builder: InventoryRowBuilder,
        workspace_resolver: Optional[IWorkspaceResolver] = None
    ):
        self.config = config
        self.logger = setup_logger(self.__class__.__name__)
        self.vm_store = vm_store
        self.row_builder = row_builder
        self.workspace_resolver = workspace_resolver

    def run(self, progress: Optional[ProgressCallback] = None, now: Optional[datetime] = None) -> InventoryResult:
        """Run one inventory pass and return the result"""

        start_time = time.time()
        result = InventoryResult(
            run_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            configuration=self.config,
            output_path=self.config.output_path
        )

        self._log_run_header()

        workspace_resource_id = self.resolve_workspace(result)
        result.workspace_resource_id = workspace_resource_id

        writer = InventoryCsvWriter(self.config.output_path)
        self.logger.info("Creating CSV file with header...")
        writer.write_header()
        self.logger.info(f"CSV header written to {self.config.output_path}")

        vms = self._discover(result)
        if not vms:
            if not result.errors:
                message = "No VMs found. CSV only contains header."
                self.logger.warning(message)
                result.warnings.append(message)
            self._finish(result, start_time)
            return result

        context = RunContext(
            policy=self.config.policy,
            window=TimeWindow.ending_now(self.config.lookback_hours, now),
            workspace_resource_id=workspace_resource_id
        )
        self.logger.info(f"Metrics time window: {context.window.start.isoformat()} to {context.window.end.isoformat()}")

        result.rows = self.build_rows(vms, context, result, progress)
        writer.append_rows(result.rows)

        self._finish(result, start_time)
        return result

    def resolve_workspace(self, result: Optional[InventoryResult] = None) -> Optional[str]:
        """Resolve the Log Analytics workspace once per run; None disables memory metrics"""

        workspace_name = self.config.workspace_name
        workspace_rg = self.config.effective_workspace_resource_group

        if not workspace_name or not workspace_rg or self.workspace_resolver is None:
            self.logger.info("No Log Analytics workspace configured. Memory utilization will be left blank.")
            return None

        self.logger.info("Resolving Log Analytics workspace resource ID...")
        try:
            workspace_id = self.workspace_resolver.resolve(workspace_name, workspace_rg)
        except Exception as e:
            self.logger.debug(f"Workspace lookup failed: {e}")
            workspace_id = None

        if not workspace_id:
            message = "Could not resolve Log Analytics workspace. Memory utilization will be left blank."
            self.logger.warning(message)
            if result is not None:
                result.warnings.append(message)
            return None

        self.logger.info(f"Workspace Resource ID: {workspace_id}")
        return workspace_id

    def build_rows(
        self,
        vms: List[VirtualMachineDescriptor],
        context: RunContext,
        result: Optional[InventoryResult] = None,
        progress: Optional[ProgressCallback] = None
    ) -> List[InventoryRow]:
        """Build rows on a bounded worker pool, returned in discovery order"""

        total = len(vms)
        rows: Dict[int, InventoryRow] = {}
        workers = max(1, min(self.config.parallel_workers, total))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._build_row, index, total, vm, context): index
                for index, vm in enumerate(vms)
            }

            completed = 0
            for future in as_completed(futures):
                index = futures[future]
                try:
                    row = future.result()
                except Exception as e:
                    vm = vms[index]
                    message = f"VM {vm.name}: {e}"
                    self.logger.error(f"Unexpected failure processing VM {vm.name}: {e}")
                    row = InventoryRow(server_name=vm.name or "", vm_id=vm.vm_id, warnings=[message])
                    if result is not None:
                        result.errors.append(message)

                rows[index] = row
                completed += 1
                if progress:
                    progress(completed, total, row)

        ordered = [rows[index] for index in range(total)]
        if result is not None:
            for row in ordered:
                result.warnings.extend(f"{row.server_name}: {warning}" for warning in row.warnings)
        return ordered

    def _build_row(
        self,
        index: int,
        total: int,
        vm: VirtualMachineDescriptor,
        context: RunContext
    ) -> InventoryRow:
        with vm_log_context(vm.name):
            self.logger.info(SEPARATOR)
            self.logger.info(f"Processing VM {index + 1}/{total}: {vm.name}")
            row = self.row_builder.build(vm, context)
            self.logger.info(f"  VM {vm.name} processed successfully")
        return row

    def _discover(self, result: InventoryResult) -> List[VirtualMachineDescriptor]:
        self.logger.info("Fetching VM list...")
        if self.config.resource_group:
            self.logger.info(f"Scope: Resource Group '{self.config.resource_group}'")
        else:
            self.logger.info("Scope: Entire subscription")

        try:
            vms = self.vm_store.list_virtual_machines(self.config.resource_group)
        except Exception as e:
            message = f"Failed to list VMs: {e}"
            self.logger.error(message)
            result.errors.append(message)
            return []

        self.logger.info(f"Found {len(vms)} VM(s) to process")
        return vms

    def _log_run_header(self) -> None:
        config = self.config
        workspace = config.workspace_name or "(not configured)"
        if config.workspace_name and config.effective_workspace_resource_group:
            workspace += f" (RG: {config.effective_workspace_resource_group})"

        self.logger.info(BANNER)
        self.logger.info("Azure Migrate VM Inventory Started")
        self.logger.info(BANNER)
        self.logger.info(f"Output CSV: {config.output_path}")
        self.logger.info(f"Subscription ID: {config.subscription_id}")
        self.logger.info(f"Resource Group: {config.resource_group or '(entire subscription)'}")
        self.logger.info(f"Log Analytics Workspace: {workspace}")
        self.logger.info(f"Lookback period: {config.lookback_hours} hours")
        self.logger.info(f"Aggregation method: {config.policy.value}")
        self.logger.info(f"Parallel workers: {config.parallel_workers}")

    def _finish(self, result: InventoryResult, start_time: float) -> None:
        result.duration_seconds = time.time() - start_time
        result.statistics = self._generate_statistics(result.rows)

        self.logger.info(BANNER)
        if result.errors:
            self.logger.info(f"Inventory completed with {len(result.errors)} error(s)")
        else:
            self.logger.info("Inventory completed successfully")
        self.logger.info(BANNER)
        self.logger.info(f"CSV written: {result.output_path}")

    def _generate_statistics(self, rows: List[InventoryRow]) -> Dict[str, int]:
        """Count rows and fields left empty by failed lookups"""

        stats = {
            'total_vms': len(rows),
            'windows_vms': 0,
            'linux_vms': 0,
            'missing_size': 0,
            'missing_memory_utilization': 0,
            'uefi_vms': 0,
            'total_disks': 0,
        }

        for row in rows:
            if row.os_name.startswith("Microsoft Windows"):
                stats['windows_vms'] += 1
            elif row.os_name:
                stats['linux_vms'] += 1
            if row.cores is None or row.memory_mb is None:
                stats['missing_size'] += 1
            if row.memory_utilization is None:
                stats['missing_memory_utilization'] += 1
            if row.boot_type == "UEFI":
                stats['uefi_vms'] += 1
            stats['total_disks'] += row.number_of_disks

        return stats
