"""Azure Migrate import CSV rendering"""

import csv
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..core.models import InventoryRow, Number

CSV_HEADER = [
    "*Server name",
    "IP addresses",
    "*Cores",
    "*Memory (In MB)",
    "*OS name",
    "OS version",
    "OS architecture",
    "Server type",
    "Hypervisor",
    "CPU utilization percentage",
    "Memory utilization percentage",
    "Network adapters",
    "Network In throughput",
    "Network Out throughput",
    "Boot type",
    "Number of disks",
    "Storage in use (In GB)",
    "Disk 1 size (In GB)",
    "Disk 1 read throughput (MB per second)",
    "Disk 1 write throughput (MB per second)",
    "Disk 1 read ops (operations per second)",
    "Disk 1 write ops (operations per second)",
    "Disk 2 size (In GB)",
    "Disk 2 read throughput (MB per second)",
    "Disk 2 write throughput (MB per second)",
    "Disk 2 read ops (operations per second)",
    "Disk 2 write ops (operations per second)",
]


def format_decimal(value: Optional[float], places: int = 2) -> str:
    """Fixed-point rendering; None renders empty"""
    if value is None:
        return ""
    return f"{float(value):.{places}f}"


def format_number(value: Optional[Number]) -> str:
    """Integers without a decimal part; None renders empty"""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_row(row: InventoryRow) -> List[str]:
    """Render a row in CSV_HEADER order"""

    # Disk I/O metrics are VM-level, so Disk 2 repeats Disk 1's numbers
    disk_io_columns = [
        format_decimal(row.disk_io.read_mbps),
        format_decimal(row.disk_io.write_mbps),
        format_decimal(row.disk_io.read_ops, places=0),
        format_decimal(row.disk_io.write_ops, places=0),
    ]

    return [
        row.server_name or "",
        row.ip_address or "",
        format_number(row.cores),
        format_number(row.memory_mb),
        row.os_name or "",
        row.os_version or "",
        row.os_architecture or "",
        row.server_type,
        row.hypervisor,
        format_decimal(row.cpu_utilization if row.cpu_utilization is not None else 0.0),
        format_decimal(row.memory_utilization),
        format_number(row.network_adapters),
        format_decimal(row.network.in_mbps),
        format_decimal(row.network.out_mbps),
        row.boot_type or "",
        format_number(row.number_of_disks),
        format_number(row.storage_in_use_gb),
        format_number(row.disk1_size_gb),
        *disk_io_columns,
        format_number(row.disk2_size_gb),
        *disk_io_columns,
    ]


class InventoryCsvWriter:
    """Write the header and rows of an inventory CSV"""

    def __init__(self, output_path: Union[str, Path]):
        self.output_path = Path(output_path)

    def write_header(self) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(CSV_HEADER)

    def append_rows(self, rows: Iterable[InventoryRow]) -> int:
        count = 0
        with open(self.output_path, "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            for row in rows:
                writer.writerow(format_row(row))
                count += 1
        return count

    def write(self, rows: Iterable[InventoryRow]) -> int:
        """Write the header followed by all rows; returns the row count"""
        self.write_header()
        return self.append_rows(rows)
