"""duelbench: benchmark two HTTP servers head to head."""

from __future__ import annotations

from duelbench._internal.config import BenchmarkConfig, load_config
from duelbench._internal.errors import BenchmarkError, ComparisonError, ConfigError, DuelBenchError
from duelbench._version import __version__
from duelbench.engine.driver import ConcurrencyDriver
from duelbench.engine.executor import RequestExecutor, RequestOutcome
from duelbench.engine.runner import BenchmarkRunner, run_comparison
from duelbench.metrics.aggregator import StatsAggregator
from duelbench.metrics.models import ComparisonResult, RunSummary, Verdict
from duelbench.metrics.scoring import calculate_score, compare_summaries
from duelbench.metrics.stats import percentile

__all__ = [
    "BenchmarkConfig",
    "BenchmarkError",
    "BenchmarkRunner",
    "ComparisonError",
    "ComparisonResult",
    "ConcurrencyDriver",
    "ConfigError",
    "DuelBenchError",
    "RequestExecutor",
    "RequestOutcome",
    "RunSummary",
    "StatsAggregator",
    "Verdict",
    "__version__",
    "calculate_score",
    "compare_summaries",
    "load_config",
    "percentile",
    "run_comparison",
]
