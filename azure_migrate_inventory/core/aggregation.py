"""Reduction of metric time series to a single value"""

import math
from typing import Sequence

from .models import AggregationPolicy

PERCENTILE_95 = 0.95


def reduce_series(samples: Sequence[float], policy: AggregationPolicy) -> float:
    """Collapse samples to one number.

    Samples must already exclude missing buckets. An empty series yields 0.0,
    which callers render like any other reading.
    """
    if not samples:
        return 0.0

    if policy == AggregationPolicy.AVERAGE:
        return sum(samples) / len(samples)

    if policy == AggregationPolicy.MAX:
        return max(samples)

    if policy == AggregationPolicy.P95:
        # Nearest rank, no interpolation
        ordered = sorted(samples)
        index = min(int(math.floor(PERCENTILE_95 * len(ordered))), len(ordered) - 1)
        return ordered[index]

    raise ValueError(f"Unsupported aggregation policy: {policy}")
