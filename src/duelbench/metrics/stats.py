"""Latency statistics over a run's sample buffer."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

SUMMARY_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0)


def percentile(samples: Sequence[float] | np.ndarray, p: float) -> float:
    """Nearest-rank percentile of ``samples``.

    The samples are sorted ascending and the element at index
    ``ceil(p / 100 * n) - 1`` (clamped to ``[0, n - 1]``) is returned, so
    the result is always one of the samples. Values are never interpolated.

    Args:
        samples: Latency samples in any order.
        p: Percentile in the range 0 to 100.

    Returns:
        The selected sample, or 0.0 for an empty sample set.
    """
    n = len(samples)
    if n == 0:
        return 0.0
    ordered = np.sort(np.asarray(samples, dtype=np.float64))
    return _nearest_rank(ordered, p)


def _nearest_rank(ordered: np.ndarray, p: float) -> float:
    n = len(ordered)
    index = math.ceil((p / 100) * n) - 1
    index = min(max(index, 0), n - 1)
    return float(ordered[index])


@dataclass(frozen=True)
class LatencyStats:
    """Descriptive statistics of a latency sample set, in milliseconds."""

    count: int = 0
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    stddev: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


def compute_latency_stats(samples: Sequence[float]) -> LatencyStats:
    """Compute min/max/mean/stddev and the summary percentiles in one sort.

    Args:
        samples: Latency samples in milliseconds.

    Returns:
        LatencyStats, all zero for an empty sample set.
    """
    if len(samples) == 0:
        return LatencyStats()

    ordered = np.sort(np.asarray(samples, dtype=np.float64))
    p50, p75, p90, p95, p99 = (_nearest_rank(ordered, p) for p in SUMMARY_PERCENTILES)

    return LatencyStats(
        count=len(ordered),
        avg=float(np.mean(ordered)),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        stddev=float(np.std(ordered)),
        p50=p50,
        p75=p75,
        p90=p90,
        p95=p95,
        p99=p99,
    )
