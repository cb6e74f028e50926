"""Run and comparison dataclasses for duelbench."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any

# NOTE: RequestOutcome lives in engine/executor.py. Re-exported here so
# consumers can import every data type from one place.
from duelbench.engine.executor import RequestOutcome

__all__ = [
    "ComparisonResult",
    "RequestOutcome",
    "RunSummary",
    "Verdict",
]

_TIMESTAMP_FIELDS = ("started_at", "completed_at")


@dataclass
class RunSummary:
    """Counters, samples and derived statistics of one measured phase.

    Populated live by a ``StatsAggregator`` and frozen once the phase ends.
    Latency samples only cover successful requests.

    Attributes:
        label: Display name of the server.
        target_url: Full URL that was requested.
        requested_total: Number of requests the phase was asked to issue.
        success_count: Outcomes with a 2xx response.
        failure_count: All other outcomes.
        total_bytes: Body bytes of successful responses.
        started_at: UTC time the measured phase started.
        completed_at: UTC time the measured phase ended.
        latency_samples: One entry per successful request, in ms.
        status_codes: Count per stringified HTTP status of every response.
        error_samples: First error messages of response-less failures.
        errors_dropped: Error messages not kept because of the sample cap.
        success_rate: Successes as a percentage of ``requested_total``.
        duration_ms: Wall-clock duration of the measured phase.
        requests_per_second: Successful requests per second.
        bytes_per_second: Successful body bytes per second.
        latency_avg: Mean latency (ms).
        latency_min: Minimum latency (ms).
        latency_max: Maximum latency (ms).
        latency_stddev: Population standard deviation of latency (ms).
        latency_p50: 50th percentile latency (ms).
        latency_p75: 75th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        frozen: True once derived fields are computed.
    """

    label: str
    target_url: str
    requested_total: int
    success_count: int = 0
    failure_count: int = 0
    total_bytes: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    latency_samples: list[float] = field(default_factory=list)
    status_codes: dict[str, int] = field(default_factory=dict)
    error_samples: list[str] = field(default_factory=list)
    errors_dropped: int = 0
    success_rate: float = 0.0
    duration_ms: float = 0.0
    requests_per_second: float = 0.0
    bytes_per_second: float = 0.0
    latency_avg: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_stddev: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    frozen: bool = False

    @property
    def outcome_count(self) -> int:
        """Number of outcomes recorded so far."""
        return self.success_count + self.failure_count

    @property
    def error_count(self) -> int:
        """Number of failures that carried an error message."""
        return len(self.error_samples) + self.errors_dropped

    @property
    def latency_cv(self) -> float:
        """Coefficient of variation of latency, 0 without samples."""
        if self.latency_avg <= 0:
            return 0.0
        return self.latency_stddev / self.latency_avg

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible primitives."""
        data = asdict(self)
        for name in _TIMESTAMP_FIELDS:
            value = data[name]
            data[name] = value.isoformat() if value is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunSummary:
        """Rebuild a summary produced by :meth:`to_dict`.

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for name in _TIMESTAMP_FIELDS:
            if values.get(name) is not None:
                values[name] = datetime.fromisoformat(values[name])
        return cls(**values)


@dataclass(frozen=True)
class Verdict:
    """Outcome of comparing two composite scores.

    Attributes:
        winner: Label of the better server, None on a tie.
        loser: Label of the other server, None on a tie.
        score_difference: Absolute difference between the raw scores.
        improvement_percent: ``(max / min - 1) * 100``; ``inf`` if the
            lower score is 0.
    """

    winner: str | None
    loser: str | None
    score_difference: float
    improvement_percent: float

    @property
    def is_tie(self) -> bool:
        """True if the difference was negligible."""
        return self.winner is None


@dataclass
class ComparisonResult:
    """Both run summaries together with their scores and verdict.

    Attributes:
        server_a: Summary of the first run.
        server_b: Summary of the second run.
        score_a: Raw directional score of the first server.
        score_b: Raw directional score of the second server.
        percent_a: Normalized share of the first server (sums to 100).
        percent_b: Normalized share of the second server.
        verdict: Winner determination.
    """

    server_a: RunSummary
    server_b: RunSummary
    score_a: float
    score_b: float
    percent_a: float
    percent_b: float
    verdict: Verdict

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible primitives."""
        return {
            "server_a": self.server_a.to_dict(),
            "server_b": self.server_b.to_dict(),
            "score_a": self.score_a,
            "score_b": self.score_b,
            "percent_a": self.percent_a,
            "percent_b": self.percent_b,
            "verdict": asdict(self.verdict),
        }
