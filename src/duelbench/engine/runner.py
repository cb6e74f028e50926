"""Top-level benchmark orchestration: warmup, measured phase, two servers."""

from __future__ import annotations

import asyncio
import sys
from enum import Enum
from typing import TYPE_CHECKING

from duelbench._internal.config import validate_config
from duelbench._internal.errors import BenchmarkError, ComparisonError
from duelbench._internal.logging import get_logger, run_context
from duelbench.engine.driver import ConcurrencyDriver
from duelbench.engine.executor import RequestExecutor
from duelbench.metrics.aggregator import StatsAggregator
from duelbench.metrics.scoring import compare_summaries

if TYPE_CHECKING:
    from collections.abc import Callable

    from duelbench._internal.config import BenchmarkConfig
    from duelbench.metrics.models import ComparisonResult, RunSummary

logger = get_logger("engine.runner")


class Phase(Enum):
    """Phases of a single benchmark run."""

    WARMUP = "warmup"
    MEASURED = "measured"


class BenchmarkRunner:
    """Runs the warmup and measured phases against both servers.

    The two servers are benchmarked strictly one after the other so they
    never compete for local resources. A failed run does not prevent the
    other run from executing, but no comparison is produced.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        on_phase: Callable[[str, Phase], None] | None = None,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated benchmark configuration.
            on_phase: Optional callback invoked with ``(label, phase)`` when
                a phase starts.
            on_progress: Optional callback invoked with
                ``(label, completed, total)`` after each measured outcome.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self._config = validate_config(config)
        self._on_phase = on_phase
        self._on_progress = on_progress

    @property
    def config(self) -> BenchmarkConfig:
        """Return the configuration."""
        return self._config

    async def run_benchmark(self, label: str, url: str) -> RunSummary:
        """Benchmark one server: discarded warmup, then the measured phase.

        Args:
            label: Display name of the server.
            url: Full URL to request.

        Returns:
            The frozen run summary.

        Raises:
            BenchmarkError: If either phase fails as a whole.
        """
        config = self._config

        async with RequestExecutor.from_config(config) as executor:
            driver = ConcurrencyDriver(executor.execute, mode=config.mode)

            self._notify_phase(label, Phase.WARMUP)
            warmup_ctx = run_context(label, Phase.WARMUP.value)
            logger.info("Warming up %s with %d requests", label, config.warmup_requests, extra=warmup_ctx)
            try:
                await driver.drive(config.warmup_requests, url, config.concurrency)
            except Exception as exc:
                logger.exception("Warmup phase failed for %s", label, extra=warmup_ctx)
                raise BenchmarkError(label, f"warmup phase failed: {exc}") from exc

            aggregator = StatsAggregator(
                label,
                url,
                config.benchmark_requests,
                max_error_samples=config.max_error_samples,
                on_progress=self._progress_for(label),
            )

            self._notify_phase(label, Phase.MEASURED)
            measured_ctx = run_context(label, Phase.MEASURED.value)
            logger.info(
                "Benchmarking %s: requests=%d, concurrency=%d, mode=%s",
                label,
                config.benchmark_requests,
                config.concurrency,
                config.mode,
                extra=measured_ctx,
            )
            try:
                aggregator.start()
                await driver.drive(
                    config.benchmark_requests,
                    url,
                    config.concurrency,
                    aggregator.record,
                )
                summary = aggregator.finish()
            except Exception as exc:
                logger.exception("Measured phase failed for %s", label, extra=measured_ctx)
                raise BenchmarkError(label, f"benchmark phase failed: {exc}") from exc

        logger.info(
            "Completed %s: ok=%d failed=%d rps=%.1f p95=%.1fms",
            label,
            summary.success_count,
            summary.failure_count,
            summary.requests_per_second,
            summary.latency_p95,
            extra=measured_ctx,
        )
        return summary

    async def compare(self) -> ComparisonResult:
        """Benchmark both servers sequentially and score them.

        Returns:
            The comparison of the two runs.

        Raises:
            ComparisonError: If either run failed.
        """
        config = self._config
        targets = (
            (config.server_a_label, config.server_a_target),
            (config.server_b_label, config.server_b_target),
        )

        summaries: list[RunSummary] = []
        failures: list[BenchmarkError] = []
        for label, url in targets:
            try:
                summaries.append(await self.run_benchmark(label, url))
            except BenchmarkError as exc:
                failures.append(exc)

        if failures:
            raise ComparisonError(failures)

        server_a, server_b = summaries
        return compare_summaries(server_a, server_b)

    def _notify_phase(self, label: str, phase: Phase) -> None:
        if self._on_phase is not None:
            self._on_phase(label, phase)

    def _progress_for(self, label: str) -> Callable[[int, int], None] | None:
        if self._on_progress is None:
            return None
        progress = self._on_progress

        def _report(completed: int, total: int) -> None:
            progress(label, completed, total)

        return _report


def event_loop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Pick the event loop the benchmarks run on.

    Returns:
        ``uvloop.new_event_loop`` when the ``uvloop`` extra is installed on a
        platform it supports, otherwise None for the default asyncio loop.
    """
    if sys.platform == "win32":
        return None
    try:
        import uvloop
    except ImportError:
        return None
    return uvloop.new_event_loop


def run_comparison(
    config: BenchmarkConfig,
    *,
    on_phase: Callable[[str, Phase], None] | None = None,
    on_progress: Callable[[str, int, int], None] | None = None,
) -> ComparisonResult:
    """Blocking entry point: run both benchmarks and compare them.

    Args:
        config: Benchmark configuration.
        on_phase: Optional phase-start callback.
        on_progress: Optional measured-phase progress callback.

    Returns:
        The comparison result.

    Raises:
        ConfigError: If the configuration is invalid.
        ComparisonError: If either run failed.
    """
    runner = BenchmarkRunner(config, on_phase=on_phase, on_progress=on_progress)
    loop_factory = event_loop_factory()
    logger.debug("Event loop: %s", "uvloop" if loop_factory is not None else "asyncio")
    with asyncio.Runner(loop_factory=loop_factory) as loop_runner:
        return loop_runner.run(runner.compare())
