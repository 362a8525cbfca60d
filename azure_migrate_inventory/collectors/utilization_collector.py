"""Utilization metrics from Azure Monitor and Log Analytics"""

import math
from typing import Any, Dict, List, Optional, Sequence

from ..core.aggregation import reduce_series
from ..core.interfaces import IMetricsService, ILogQueryService
from ..core.models import (
    AggregationPolicy,
    DiskIOProfile,
    MetricSample,
    NetworkThroughput,
    OSFamily,
    RunContext,
    VirtualMachineDescriptor
)
from ..utils.logger import setup_logger

METRIC_INTERVAL = "PT5M"
METRIC_INTERVAL_SECONDS = 300
BYTES_PER_MB = 1048576

CPU_METRIC = "Percentage CPU"
NETWORK_IN_METRIC = "Network In Total"
NETWORK_OUT_METRIC = "Network Out Total"
DISK_READ_BYTES_METRIC = "Disk Read Bytes/sec"
DISK_WRITE_BYTES_METRIC = "Disk Write Bytes/sec"
DISK_READ_OPS_METRIC = "Disk Read Operations/Sec"
DISK_WRITE_OPS_METRIC = "Disk Write Operations/Sec"

WINDOWS_MEMORY_COUNTER = "% Committed Bytes In Use"
LINUX_MEMORY_COUNTER = "% Used Memory"

# Both memory queries summarize Avg, P95, Max in this column order
POLICY_COLUMNS = {
    AggregationPolicy.AVERAGE: 0,
    AggregationPolicy.P95: 1,
    AggregationPolicy.MAX: 2,
}

INSIGHTS_MEMORY_QUERY = """InsightsMetrics
| where Namespace == "Memory"
| where _ResourceId =~ "{vm_id}"
| where TimeGenerated > ago({lookback}h)
| extend TotalMemMB = todouble(todynamic(Tags)['vm.azm.ms/memorySizeMB'])
| where isnotempty(TotalMemMB) and TotalMemMB > 0
| extend UsedPct = (Val / TotalMemMB) * 100.0
| summarize Avg=avg(UsedPct), P95=percentile(UsedPct, 95), Max=max(UsedPct)"""

PERF_MEMORY_QUERY = """Perf
| where _ResourceId =~ "{vm_id}"
| where ObjectName == "Memory" and CounterName in ({counters})
| where TimeGenerated > ago({lookback}h)
| summarize Avg=avg(CounterValue), P95=percentile(CounterValue, 95), Max=max(CounterValue)"""


class UtilizationCollector:
    """Collect CPU, memory, network and disk utilization for a VM.

    Every query failure is logged and treated as "no data"; nothing raises.
    """

    def __init__(self, metrics_service: IMetricsService, log_query_service: Optional[ILogQueryService] = None):
        self.logger = setup_logger(self.__class__.__name__)
        self.metrics_service = metrics_service
        self.log_query_service = log_query_service

    def collect_cpu(self, vm_id: str, context: RunContext) -> float:
        """CPU % under the run policy; 0.0 when there is no data.

        Average and P95 are computed over the per-bucket averages, Max over the
        per-bucket maxima.
        """
        self.logger.debug("  Fetching CPU metrics from Azure Monitor...")
        samples = self._query_metrics(vm_id, [CPU_METRIC], context, ["Average", "Maximum"]).get(CPU_METRIC, [])

        if context.policy == AggregationPolicy.MAX:
            values = [sample.maximum for sample in samples if sample.maximum is not None]
        else:
            values = [sample.average for sample in samples if sample.average is not None]

        cpu = reduce_series(values, context.policy)
        self.logger.info(f"  CPU utilization ({context.policy.value}): {cpu:.2f}%")
        return cpu

    def collect_memory(self, vm: VirtualMachineDescriptor, context: RunContext) -> Optional[float]:
        """Memory % from Log Analytics; None when unavailable"""

        if not context.memory_metrics_enabled or self.log_query_service is None:
            self.logger.debug("  Skipping memory metrics (no workspace configured)")
            return None

        column = POLICY_COLUMNS[context.policy]

        self.logger.debug("  Querying Log Analytics for memory metrics (InsightsMetrics)...")
        query = INSIGHTS_MEMORY_QUERY.format(vm_id=vm.vm_id, lookback=context.window.lookback_hours)
        value = self._select_column(self._query_logs(query, context, "InsightsMetrics"), column)

        if value is None:
            self.logger.debug("  No InsightsMetrics data, falling back to Perf counters...")
            counters = ", ".join(f'"{name}"' for name in memory_counters_for(vm.os_family))
            query = PERF_MEMORY_QUERY.format(
                vm_id=vm.vm_id,
                counters=counters,
                lookback=context.window.lookback_hours
            )
            value = self._select_column(self._query_logs(query, context, "Perf"), column)

        if value is None:
            self.logger.warning(f"  No memory metrics found in Log Analytics for {vm.name}")
        else:
            self.logger.info(f"  Memory utilization ({context.policy.value}): {value:.2f}%")
        return value

    def collect_network(self, vm_id: str, context: RunContext) -> NetworkThroughput:
        """Network in/out in MB/s, always averaged regardless of the run policy"""
        self.logger.debug("  Fetching network throughput metrics...")
        series = self._query_metrics(vm_id, [NETWORK_IN_METRIC, NETWORK_OUT_METRIC], context, ["Average"])

        # Totals are bytes per 5 minute bucket
        throughput = NetworkThroughput(
            in_mbps=self._average(series.get(NETWORK_IN_METRIC, [])) / BYTES_PER_MB / METRIC_INTERVAL_SECONDS,
            out_mbps=self._average(series.get(NETWORK_OUT_METRIC, [])) / BYTES_PER_MB / METRIC_INTERVAL_SECONDS
        )
        self.logger.info(f"  Network In: {throughput.in_mbps:.2f} MB/s, Out: {throughput.out_mbps:.2f} MB/s")
        return throughput

    def collect_disk_io(self, vm_id: str, context: RunContext) -> DiskIOProfile:
        """VM-level disk throughput and IOPS from one combined query"""
        self.logger.debug("  Fetching disk I/O metrics...")
        series = self._query_metrics(
            vm_id,
            [DISK_READ_BYTES_METRIC, DISK_WRITE_BYTES_METRIC, DISK_READ_OPS_METRIC, DISK_WRITE_OPS_METRIC],
            context,
            ["Average"]
        )

        disk_io = DiskIOProfile(
            read_mbps=self._average(series.get(DISK_READ_BYTES_METRIC, [])) / BYTES_PER_MB,
            write_mbps=self._average(series.get(DISK_WRITE_BYTES_METRIC, [])) / BYTES_PER_MB,
            read_ops=self._average(series.get(DISK_READ_OPS_METRIC, [])),
            write_ops=self._average(series.get(DISK_WRITE_OPS_METRIC, []))
        )
        self.logger.info(
            f"  Disk I/O: Read {disk_io.read_mbps:.2f} MB/s ({disk_io.read_ops:.0f} IOPS), "
            f"Write {disk_io.write_mbps:.2f} MB/s ({disk_io.write_ops:.0f} IOPS)"
        )
        return disk_io

    def _average(self, samples: Sequence[MetricSample]) -> float:
        return reduce_series(
            [sample.average for sample in samples if sample.average is not None],
            AggregationPolicy.AVERAGE
        )

    def _query_metrics(
        self,
        vm_id: str,
        metric_names: List[str],
        context: RunContext,
        aggregations: List[str]
    ) -> Dict[str, List[MetricSample]]:
        """Query metrics and key the result by requested name, matched case-insensitively"""
        try:
            response = self.metrics_service.query(
                vm_id, metric_names, context.window, METRIC_INTERVAL, aggregations
            ) or {}
        except Exception as e:
            self.logger.warning(f"  Metrics query failed for {', '.join(metric_names)}: {e}")
            return {}

        by_lower_name = {str(name).lower(): samples for name, samples in response.items()}
        return {
            name: by_lower_name.get(name.lower(), [])
            for name in metric_names
        }

    def _query_logs(self, query: str, context: RunContext, table: str) -> List[List[Any]]:
        try:
            rows = self.log_query_service.query(context.workspace_resource_id, query, context.window)
        except Exception as e:
            self.logger.warning(f"  Log Analytics query on {table} failed: {e}")
            return []

        if rows:
            self.logger.debug(f"  {table} data found")
        return rows or []

    def _select_column(self, rows: List[List[Any]], column: int) -> Optional[float]:
        if not rows:
            return None

        row = rows[0]
        if len(row) <= column or row[column] is None:
            return None

        try:
            value = float(row[column])
        except (TypeError, ValueError):
            return None

        # summarize over no input yields NaN
        if math.isnan(value):
            return None
        return value


def memory_counters_for(os_family: OSFamily) -> List[str]:
    """Perf counter names carrying memory % for an OS family"""
    if os_family == OSFamily.WINDOWS:
        return [WINDOWS_MEMORY_COUNTER]
    if os_family == OSFamily.LINUX:
        return [LINUX_MEMORY_COUNTER]
    return [WINDOWS_MEMORY_COUNTER, LINUX_MEMORY_COUNTER]
