"""Live aggregation of request outcomes into a ``RunSummary``.

The aggregator's ``record`` method is passed as the driver's per-result
callback. All calls happen on the event loop thread, so the summary needs
no locking.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from duelbench._internal.logging import get_logger
from duelbench.metrics.models import RunSummary
from duelbench.metrics.stats import compute_latency_stats

if TYPE_CHECKING:
    from duelbench._internal.types import ProgressCallback
    from duelbench.engine.executor import RequestOutcome

logger = get_logger("metrics.aggregator")

DEFAULT_MAX_ERROR_SAMPLES = 100


class StatsAggregator:
    """Builds the summary of one measured phase.

    Lifecycle: ``start()`` -> any number of ``record()`` -> ``finish()``.
    After ``finish()`` the summary is frozen and further records raise.

    Attributes:
        summary: The summary being populated.
        max_error_samples: Error messages kept; later ones are only counted.
    """

    def __init__(
        self,
        label: str,
        target_url: str,
        requested_total: int,
        *,
        max_error_samples: int = DEFAULT_MAX_ERROR_SAMPLES,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the aggregator with an empty summary.

        Args:
            label: Display name of the server.
            target_url: Full URL requested.
            requested_total: Requests the phase will issue.
            max_error_samples: Cap on stored error messages.
            on_progress: Optional callback receiving ``(recorded, requested)``
                after every outcome.
        """
        self.summary = RunSummary(
            label=label,
            target_url=target_url,
            requested_total=requested_total,
        )
        self.max_error_samples = max_error_samples
        self._on_progress = on_progress
        self._start_monotonic: float | None = None

    def start(self) -> None:
        """Stamp the start of the measured phase."""
        self.summary.started_at = datetime.now(tz=UTC)
        self._start_monotonic = time.monotonic()

    def record(self, outcome: RequestOutcome) -> None:
        """Fold one outcome into the summary.

        Args:
            outcome: The request outcome.

        Raises:
            RuntimeError: If the summary is already frozen.
        """
        summary = self.summary
        if summary.frozen:
            msg = f"Summary for {summary.label} is frozen"
            raise RuntimeError(msg)

        if outcome.succeeded:
            summary.success_count += 1
            summary.latency_samples.append(outcome.elapsed_ms)
            summary.total_bytes += outcome.byte_count
        else:
            summary.failure_count += 1
            if outcome.error:
                if len(summary.error_samples) < self.max_error_samples:
                    summary.error_samples.append(outcome.error)
                else:
                    summary.errors_dropped += 1

        # Response-less failures have no status to count
        if outcome.status_code != 0:
            key = str(outcome.status_code)
            summary.status_codes[key] = summary.status_codes.get(key, 0) + 1

        if self._on_progress is not None:
            self._on_progress(summary.outcome_count, summary.requested_total)

    def finish(self) -> RunSummary:
        """Stamp the end of the phase, compute derived fields and freeze.

        Returns:
            The frozen summary.

        Raises:
            RuntimeError: If the summary is already frozen.
        """
        summary = self.summary
        if summary.frozen:
            msg = f"Summary for {summary.label} is frozen"
            raise RuntimeError(msg)

        now = time.monotonic()
        if self._start_monotonic is None:
            self._start_monotonic = now
            summary.started_at = datetime.now(tz=UTC)
        summary.completed_at = datetime.now(tz=UTC)
        summary.duration_ms = (now - self._start_monotonic) * 1000

        if summary.requested_total > 0:
            summary.success_rate = 100 * summary.success_count / summary.requested_total

        duration_s = summary.duration_ms / 1000
        if duration_s > 0:
            summary.requests_per_second = summary.success_count / duration_s
            summary.bytes_per_second = summary.total_bytes / duration_s

        stats = compute_latency_stats(summary.latency_samples)
        summary.latency_avg = stats.avg
        summary.latency_min = stats.min
        summary.latency_max = stats.max
        summary.latency_stddev = stats.stddev
        summary.latency_p50 = stats.p50
        summary.latency_p75 = stats.p75
        summary.latency_p90 = stats.p90
        summary.latency_p95 = stats.p95
        summary.latency_p99 = stats.p99

        summary.frozen = True
        logger.debug(
            "Summary frozen for %s: ok=%d failed=%d rps=%.1f p95=%.1fms",
            summary.label,
            summary.success_count,
            summary.failure_count,
            summary.requests_per_second,
            summary.latency_p95,
        )
        return summary
