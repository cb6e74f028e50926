"""Weighted composite scoring of two run summaries.

``calculate_score`` is directional: it scores one summary using the other
as the reference, so it is always called twice with the arguments
swapped. The two raw scores are then normalized into percentages that sum
to 100.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from duelbench._internal.errors import ConfigError
from duelbench.metrics.models import ComparisonResult, Verdict

if TYPE_CHECKING:
    from duelbench.metrics.models import RunSummary

TIE_THRESHOLD = 0.05


@dataclass(frozen=True)
class ScoreWeights:
    """Weights of the five sub-scores. They must sum to 1.0."""

    rps: float = 0.35
    success_rate: float = 0.25
    avg_latency: float = 0.15
    p95: float = 0.15
    p99: float = 0.10

    def __post_init__(self) -> None:
        total = self.rps + self.success_rate + self.avg_latency + self.p95 + self.p99
        if not math.isclose(total, 1.0):
            msg = f"score weights must sum to 1.0, got {total}"
            raise ConfigError(msg)


DEFAULT_WEIGHTS = ScoreWeights()


def _latency_score(value: float, other_value: float) -> float:
    # Denominator floored at 1ms so near-zero latencies do not blow up
    return min(other_value, value) / max(1.0, value)


def calculate_score(
    result: RunSummary,
    other: RunSummary,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    """Score ``result`` against ``other`` (higher is better).

    Sub-scores:
        - throughput: ``result.rps / max(result.rps, other.rps)``
        - reliability: ``result.success_rate / 100``
        - avg, p95 and p99 latency: ``min(other, result) / max(1, result)``

    Args:
        result: Summary being scored.
        other: Summary used as the reference.
        weights: Sub-score weights.

    Returns:
        The weighted raw score, between 0 and 1.
    """
    best_rps = max(result.requests_per_second, other.requests_per_second)
    rps_score = result.requests_per_second / best_rps if best_rps > 0 else 0.0
    success_score = result.success_rate / 100

    avg_score = _latency_score(result.latency_avg, other.latency_avg)
    p95_score = _latency_score(result.latency_p95, other.latency_p95)
    p99_score = _latency_score(result.latency_p99, other.latency_p99)

    return (
        weights.rps * rps_score
        + weights.success_rate * success_score
        + weights.avg_latency * avg_score
        + weights.p95 * p95_score
        + weights.p99 * p99_score
    )


def normalize_scores(score_a: float, score_b: float) -> tuple[float, float]:
    """Convert two raw scores into percentages summing to 100.

    Two zero scores split evenly.
    """
    total = score_a + score_b
    if total <= 0:
        return 50.0, 50.0
    return score_a / total * 100, score_b / total * 100


def determine_verdict(
    label_a: str,
    score_a: float,
    label_b: str,
    score_b: float,
    *,
    threshold: float = TIE_THRESHOLD,
) -> Verdict:
    """Decide the winner from two raw scores.

    A difference strictly below ``threshold`` is a tie. A difference equal
    to the threshold (within float rounding, e.g. ``0.60 - 0.55``) is a win.

    Args:
        label_a: Label of the first server.
        score_a: Raw score of the first server.
        label_b: Label of the second server.
        score_b: Raw score of the second server.
        threshold: Minimum difference for a win.

    Returns:
        The verdict.
    """
    difference = abs(score_a - score_b)
    high, low = max(score_a, score_b), min(score_a, score_b)
    improvement = (high / low - 1) * 100 if low > 0 else math.inf

    if difference < threshold and not math.isclose(difference, threshold):
        return Verdict(
            winner=None,
            loser=None,
            score_difference=difference,
            improvement_percent=improvement,
        )

    if score_a > score_b:
        winner, loser = label_a, label_b
    else:
        winner, loser = label_b, label_a
    return Verdict(
        winner=winner,
        loser=loser,
        score_difference=difference,
        improvement_percent=improvement,
    )


def compare_summaries(
    server_a: RunSummary,
    server_b: RunSummary,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ComparisonResult:
    """Score both summaries against each other and pick a winner.

    Args:
        server_a: Frozen summary of the first run.
        server_b: Frozen summary of the second run.
        weights: Sub-score weights.

    Returns:
        The full comparison.
    """
    score_a = calculate_score(server_a, server_b, weights)
    score_b = calculate_score(server_b, server_a, weights)
    percent_a, percent_b = normalize_scores(score_a, score_b)
    verdict = determine_verdict(server_a.label, score_a, server_b.label, score_b)

    return ComparisonResult(
        server_a=server_a,
        server_b=server_b,
        score_a=score_a,
        score_b=score_b,
        percent_a=percent_a,
        percent_b=percent_b,
        verdict=verdict,
    )
