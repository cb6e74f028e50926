"""Tests for nearest-rank percentiles and latency statistics."""

from __future__ import annotations

import random

import numpy as np
import pytest

from duelbench.metrics.stats import LatencyStats, compute_latency_stats, percentile


class TestPercentile:
    """Tests for the percentile function."""

    def test_empty_samples_give_zero(self) -> None:
        assert percentile([], 50) == 0.0
        assert percentile([], 99) == 0.0

    def test_single_sample_for_every_p(self) -> None:
        for p in (0, 1, 50, 99, 100):
            assert percentile([42.0], p) == 42.0

    def test_nearest_rank_on_one_to_ten(self) -> None:
        samples = [float(v) for v in range(1, 11)]
        assert percentile(samples, 50) == 5.0
        assert percentile(samples, 90) == 9.0
        assert percentile(samples, 95) == 10.0
        assert percentile(samples, 99) == 10.0

    def test_p0_clamps_to_minimum(self) -> None:
        assert percentile([3.0, 1.0, 2.0], 0) == 1.0

    def test_p100_is_maximum(self) -> None:
        assert percentile([3.0, 1.0, 2.0], 100) == 3.0

    def test_unsorted_input_is_sorted(self) -> None:
        assert percentile([50.0, 10.0, 40.0, 20.0, 30.0], 50) == 30.0

    def test_does_not_mutate_input(self) -> None:
        samples = [3.0, 1.0, 2.0]
        percentile(samples, 50)
        assert samples == [3.0, 1.0, 2.0]

    def test_never_interpolates(self) -> None:
        rng = random.Random(7)
        samples = [rng.uniform(0, 100) for _ in range(37)]
        for p in (10, 33.3, 50, 75, 90, 95, 99):
            assert percentile(samples, p) in samples

    def test_monotonic_in_p(self) -> None:
        rng = random.Random(11)
        samples = [rng.expovariate(0.1) for _ in range(500)]
        values = [percentile(samples, p) for p in range(0, 101)]
        assert values == sorted(values)

    def test_accepts_numpy_array(self) -> None:
        assert percentile(np.array([1.0, 2.0, 3.0, 4.0]), 50) == 2.0


class TestComputeLatencyStats:
    """Tests for compute_latency_stats."""

    def test_empty_is_all_zero(self) -> None:
        assert compute_latency_stats([]) == LatencyStats()

    def test_basic_statistics(self) -> None:
        stats = compute_latency_stats([10.0, 20.0, 30.0, 40.0, 50.0])
        assert stats.count == 5
        assert stats.min == 10.0
        assert stats.max == 50.0
        assert stats.avg == pytest.approx(30.0)
        assert stats.p50 == 30.0
        assert stats.p99 == 50.0

    def test_population_standard_deviation(self) -> None:
        stats = compute_latency_stats([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
        assert stats.stddev == pytest.approx(2.0)

    def test_percentiles_ordered(self) -> None:
        rng = random.Random(3)
        stats = compute_latency_stats([rng.uniform(1, 500) for _ in range(1000)])
        assert stats.min <= stats.p50 <= stats.p75 <= stats.p90 <= stats.p95 <= stats.p99 <= stats.max

    def test_matches_percentile(self) -> None:
        samples = [float(v) for v in range(100, 0, -1)]
        stats = compute_latency_stats(samples)
        assert stats.p75 == percentile(samples, 75)
        assert stats.p95 == percentile(samples, 95)
