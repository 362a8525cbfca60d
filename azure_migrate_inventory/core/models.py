"""Core data models for Azure Migrate VM Inventory"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple, Union

Number = Union[int, float]


class AggregationPolicy(Enum):
    """Statistic used to collapse a metric time series into one value"""
    AVERAGE = "Average"
    MAX = "Max"
    P95 = "P95"

    @classmethod
    def parse(cls, value: Union[str, "AggregationPolicy"]) -> "AggregationPolicy":
        """Parse a policy name case-insensitively (Average, Max, P95)"""
        if isinstance(value, cls):
            return value

        normalized = str(value).strip().lower()
        aliases = {
            "average": cls.AVERAGE,
            "avg": cls.AVERAGE,
            "max": cls.MAX,
            "maximum": cls.MAX,
            "p95": cls.P95,
        }
        if normalized not in aliases:
            raise ValueError(
                f"Unsupported aggregation method: {value}. Use one of: Average, Max, P95"
            )
        return aliases[normalized]


class OSFamily(Enum):
    """Coarse OS family reported on the VM's OS disk"""
    WINDOWS = "Windows"
    LINUX = "Linux"
    UNKNOWN = ""

    @classmethod
    def from_os_type(cls, os_type: Optional[str]) -> "OSFamily":
        if not os_type:
            return cls.UNKNOWN
        if str(os_type).lower() == "windows":
            return cls.WINDOWS
        if str(os_type).lower() == "linux":
            return cls.LINUX
        return cls.UNKNOWN


class BootType(Enum):
    UEFI = "UEFI"
    BIOS = "BIOS"


@dataclass(frozen=True)
class DiskReference:
    """Disk entry as declared in a VM's storage profile"""
    managed_disk_id: Optional[str] = None
    size_gb: Optional[Number] = None
    name: Optional[str] = None
    lun: Optional[int] = None


@dataclass(frozen=True)
class VirtualMachineDescriptor:
    """Immutable view of a VM record as returned by the compute API"""
    vm_id: str
    name: str
    location: str = ""
    resource_group: str = ""
    vm_size: str = ""
    os_type: Optional[str] = None
    network_interface_ids: Tuple[str, ...] = ()
    os_disk: DiskReference = field(default_factory=DiskReference)
    data_disks: Tuple[DiskReference, ...] = ()
    security_type: Optional[str] = None
    secure_boot_enabled: Optional[bool] = None

    @property
    def os_family(self) -> OSFamily:
        return OSFamily.from_os_type(self.os_type)


@dataclass(frozen=True)
class SizeProfile:
    """Cores and memory for a VM size label"""
    cores: Optional[int] = None
    memory_mb: Optional[int] = None
    source: Optional[str] = None  # size_catalog, sku_catalog

    @property
    def is_complete(self) -> bool:
        return self.cores is not None and self.memory_mb is not None

    @classmethod
    def unknown(cls) -> "SizeProfile":
        return cls()


@dataclass(frozen=True)
class DiskProfile:
    """Resolved size of a single disk"""
    size_gb: Optional[Number] = None
    disk_id: Optional[str] = None
    source: Optional[str] = None  # disk, descriptor

    @property
    def is_resolved(self) -> bool:
        return self.size_gb is not None


@dataclass(frozen=True)
class MetricSample:
    """One metric bucket; aggregates are None when the bucket had no data"""
    timestamp: Optional[datetime] = None
    average: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(frozen=True)
class TimeWindow:
    """Lookback window ending at 'now'"""
    start: datetime
    end: datetime
    lookback_hours: int

    @classmethod
    def ending_now(cls, lookback_hours: int, now: Optional[datetime] = None) -> "TimeWindow":
        end = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        return cls(start=end - timedelta(hours=lookback_hours), end=end, lookback_hours=lookback_hours)

    @property
    def timespan(self) -> str:
        return f"{self.start.isoformat()}/{self.end.isoformat()}"


@dataclass(frozen=True)
class RunContext:
    """Run-wide settings threaded into every collector call"""
    policy: AggregationPolicy
    window: TimeWindow
    workspace_resource_id: Optional[str] = None

    @property
    def memory_metrics_enabled(self) -> bool:
        return bool(self.workspace_resource_id)


@dataclass(frozen=True)
class NetworkThroughput:
    """Network throughput in MB per second"""
    in_mbps: float = 0.0
    out_mbps: float = 0.0


@dataclass(frozen=True)
class DiskIOProfile:
    """VM-level disk throughput (MB/s) and operations per second"""
    read_mbps: float = 0.0
    write_mbps: float = 0.0
    read_ops: float = 0.0
    write_ops: float = 0.0


@dataclass
class InventoryRow:
    """One VM in the Azure Migrate import format"""
    server_name: str
    ip_address: str = ""
    cores: Optional[int] = None
    memory_mb: Optional[int] = None
    os_name: str = ""
    os_version: str = ""
    os_architecture: str = ""
    server_type: str = "Virtual"
    hypervisor: str = "Hyper-V"
    cpu_utilization: float = 0.0
    memory_utilization: Optional[float] = None
    network_adapters: Optional[int] = None
    network: NetworkThroughput = field(default_factory=NetworkThroughput)
    boot_type: str = ""
    number_of_disks: int = 1
    storage_in_use_gb: Optional[Number] = None
    disk1_size_gb: Optional[Number] = None
    disk2_size_gb: Optional[Number] = None
    disk_io: DiskIOProfile = field(default_factory=DiskIOProfile)

    # Diagnostics, not exported
    vm_id: str = ""
    warnings: List[str] = field(default_factory=list)


@dataclass
class InventoryConfiguration:
    """Configuration for an inventory run"""
    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None
    workspace_name: Optional[str] = None
    workspace_resource_group: Optional[str] = None
    output_path: str = "./azure_migrate_vm_inventory.csv"
    lookback_hours: int = 168
    aggregation: str = "P95"
    parallel_workers: int = 4
    request_timeout: int = 60
    retry_total: int = 0
    log_dir: str = "."
    log_level: str = "INFO"

    @property
    def policy(self) -> AggregationPolicy:
        return AggregationPolicy.parse(self.aggregation)

    @property
    def effective_workspace_resource_group(self) -> Optional[str]:
        return self.workspace_resource_group or self.resource_group


@dataclass
class InventoryResult:
    """Results from an inventory run"""
    run_id: str
    timestamp: datetime
    configuration: InventoryConfiguration
    rows: List[InventoryRow] = field(default_factory=list)
    output_path: Optional[str] = None
    log_file: Optional[str] = None
    workspace_resource_id: Optional[str] = None
    duration_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    statistics: Dict[str, Any] = field(default_factory=dict)
