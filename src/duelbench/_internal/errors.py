"""Custom exception hierarchy for duelbench."""

from __future__ import annotations


class DuelBenchError(Exception):
    """Base exception for all duelbench errors.

    Per-request failures (timeouts, refused connections, non-2xx statuses)
    are never raised; they are recorded as data on a ``RequestOutcome``.
    Only configuration problems and phase-level failures surface as
    exceptions.
    """


class ConfigError(DuelBenchError):
    """Raised when configuration is invalid or missing.

    Examples:
        - An environment variable has a non-numeric value.
        - The concurrency limit is below 1.
    """


class BenchmarkError(DuelBenchError):
    """Raised when a benchmark run cannot produce a summary.

    Fatal for the run it belongs to only. The other server's run is
    still executed.

    Attributes:
        label: Label of the server whose run failed.
    """

    def __init__(self, label: str, message: str) -> None:
        super().__init__(f"{label}: {message}")
        self.label = label


class ComparisonError(DuelBenchError):
    """Raised when one or both runs failed, so no comparison is possible.

    Attributes:
        failures: The run-level errors, in run order.
    """

    def __init__(self, failures: list[BenchmarkError]) -> None:
        labels = ", ".join(f.label for f in failures)
        super().__init__(f"Unable to compare servers, failed runs: {labels}")
        self.failures = failures
