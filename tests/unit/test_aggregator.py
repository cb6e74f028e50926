"""Tests for the StatsAggregator."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from duelbench.metrics.aggregator import StatsAggregator

if TYPE_CHECKING:
    from collections.abc import Callable

    from duelbench.engine.executor import RequestOutcome


def _aggregator(requested_total: int = 10, **kwargs: object) -> StatsAggregator:
    aggregator = StatsAggregator("Server A", "http://localhost:3000/", requested_total, **kwargs)  # type: ignore[arg-type]
    aggregator.start()
    return aggregator


class TestRecord:
    """Tests for folding outcomes into the summary."""

    def test_success_adds_sample_and_bytes(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator()
        aggregator.record(outcome_factory(elapsed_ms=12.5, byte_count=64))
        summary = aggregator.summary
        assert summary.success_count == 1
        assert summary.failure_count == 0
        assert summary.latency_samples == [12.5]
        assert summary.total_bytes == 64
        assert summary.status_codes == {"200": 1}

    def test_http_failure_counted_in_histogram(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator()
        aggregator.record(outcome_factory(status_code=503, byte_count=20))
        summary = aggregator.summary
        assert summary.failure_count == 1
        assert summary.latency_samples == []
        assert summary.total_bytes == 0
        assert summary.status_codes == {"503": 1}
        assert summary.error_samples == []

    def test_response_less_failure_skips_histogram(
        self, outcome_factory: Callable[..., RequestOutcome]
    ) -> None:
        aggregator = _aggregator()
        aggregator.record(outcome_factory(status_code=0, error="TimeoutError: no response within 5000ms"))
        summary = aggregator.summary
        assert summary.failure_count == 1
        assert summary.status_codes == {}
        assert summary.error_samples == ["TimeoutError: no response within 5000ms"]

    def test_error_samples_capped(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=5, max_error_samples=2)
        for i in range(5):
            aggregator.record(outcome_factory(status_code=0, error=f"ClientConnectorError: {i}"))
        summary = aggregator.summary
        assert summary.error_samples == ["ClientConnectorError: 0", "ClientConnectorError: 1"]
        assert summary.errors_dropped == 3
        assert summary.error_count == 5

    def test_progress_callback(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        calls: list[tuple[int, int]] = []
        aggregator = _aggregator(requested_total=3, on_progress=lambda done, total: calls.append((done, total)))
        for _ in range(3):
            aggregator.record(outcome_factory())
        assert calls == [(1, 3), (2, 3), (3, 3)]


class TestFinish:
    """Tests for derived statistics and freezing."""

    def test_counts_add_up(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=6)
        for _ in range(4):
            aggregator.record(outcome_factory())
        aggregator.record(outcome_factory(status_code=500))
        aggregator.record(outcome_factory(status_code=0, error="boom"))
        summary = aggregator.finish()
        assert summary.success_count + summary.failure_count == summary.requested_total
        assert len(summary.latency_samples) == summary.success_count
        assert sum(summary.status_codes.values()) == 5

    def test_success_rate_uses_requested_total(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=4)
        for _ in range(3):
            aggregator.record(outcome_factory())
        aggregator.record(outcome_factory(status_code=500))
        summary = aggregator.finish()
        assert summary.success_rate == pytest.approx(75.0)

    def test_latency_stats_from_successes_only(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=3)
        aggregator.record(outcome_factory(elapsed_ms=10.0))
        aggregator.record(outcome_factory(elapsed_ms=30.0))
        aggregator.record(outcome_factory(elapsed_ms=999.0, status_code=500))
        summary = aggregator.finish()
        assert summary.latency_min == 10.0
        assert summary.latency_max == 30.0
        assert summary.latency_avg == pytest.approx(20.0)

    def test_all_failures_give_zero_latency(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=2)
        aggregator.record(outcome_factory(status_code=500))
        aggregator.record(outcome_factory(status_code=500))
        summary = aggregator.finish()
        assert summary.success_rate == 0.0
        assert summary.requests_per_second == 0.0
        assert summary.latency_avg == 0.0
        assert summary.latency_p99 == 0.0
        assert summary.latency_cv == 0.0

    def test_timestamps_and_duration(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=1)
        aggregator.record(outcome_factory())
        summary = aggregator.finish()
        assert summary.started_at is not None
        assert summary.completed_at is not None
        assert summary.completed_at >= summary.started_at
        assert summary.duration_ms >= 0

    def test_rps_counts_successes(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=2)
        aggregator.record(outcome_factory(byte_count=500))
        aggregator.record(outcome_factory(status_code=500))
        summary = aggregator.finish()
        if summary.duration_ms > 0:
            assert summary.requests_per_second == pytest.approx(1 / (summary.duration_ms / 1000))
            assert summary.bytes_per_second == pytest.approx(500 / (summary.duration_ms / 1000))

    def test_frozen_after_finish(self, outcome_factory: Callable[..., RequestOutcome]) -> None:
        aggregator = _aggregator(requested_total=1)
        aggregator.record(outcome_factory())
        summary = aggregator.finish()
        assert summary.frozen
        with pytest.raises(RuntimeError, match="frozen"):
            aggregator.record(outcome_factory())
        with pytest.raises(RuntimeError, match="frozen"):
            aggregator.finish()
