"""Text report for a finished comparison.

Every function here is pure: it takes summaries (or a comparison) and
returns strings or ``rich`` renderables. ``render_report`` prints the
renderables into an in-memory console and returns the captured text, so
the caller decides where the report goes.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from rich.console import RenderableType

    from duelbench._internal.config import BenchmarkConfig
    from duelbench.metrics.models import ComparisonResult, RunSummary

BUCKET_COUNT = 20
BAR_WIDTH = 30
ERRORS_SHOWN = 5
HIGH_P95_MS = 1000.0
THROUGHPUT_GAP = 0.3
HIGH_LATENCY_CV = 0.5

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
_STYLE_A = "blue"
_STYLE_B = "green"

ALL_GOOD = "Both servers appear to be performing well within expected parameters."


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_number(value: float, decimals: int = 2) -> str:
    """Format ``value`` with a fixed number of decimals."""
    if math.isinf(value):
        return "inf"
    return f"{value:.{decimals}f}"


def format_bytes(num_bytes: float, decimals: int = 2) -> str:
    """Format a byte count with a 1024-based unit.

    Trailing zeros are dropped, so ``1536`` becomes ``"1.5 KB"``.

    Args:
        num_bytes: Byte count (or rate).
        decimals: Maximum number of decimals.

    Returns:
        Human-readable size such as ``"12.34 MB"``.
    """
    if num_bytes <= 0:
        return "0 Bytes"
    index = int(math.floor(math.log(num_bytes) / math.log(1024)))
    index = min(max(index, 0), len(_BYTE_UNITS) - 1)
    scaled = f"{num_bytes / 1024**index:.{decimals}f}"
    if "." in scaled:
        scaled = scaled.rstrip("0").rstrip(".")
    return f"{scaled} {_BYTE_UNITS[index]}"


def _section(title: str) -> Rule:
    return Rule(Text(f"▶ {title}", style="bold cyan"), align="left", style="cyan")


# ---------------------------------------------------------------------------
# Banner and tables
# ---------------------------------------------------------------------------


def config_banner(comparison: ComparisonResult, config: BenchmarkConfig | None = None) -> Table:
    """Describe what was benchmarked.

    Args:
        comparison: The comparison being reported.
        config: The configuration of the run, when available. Re-rendered
            exports only know what the summaries carry.

    Returns:
        A two-column key/value grid.
    """
    a, b = comparison.server_a, comparison.server_b
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row(f"{a.label}:", a.target_url)
    grid.add_row(f"{b.label}:", b.target_url)
    if config is not None:
        grid.add_row("Warmup Requests:", str(config.warmup_requests))
    grid.add_row("Benchmark Requests:", str(a.requested_total))
    if config is not None:
        grid.add_row("Concurrency:", str(config.concurrency))
        grid.add_row("Mode:", config.mode)
        grid.add_row("Method:", config.method)
        grid.add_row("Timeout:", f"{format_number(config.request_timeout * 1000, 0)}ms")
    return grid


def _comparison_table(a: RunSummary, b: RunSummary, first_header: str) -> Table:
    table = Table(box=box.SQUARE, show_header=True, header_style="bold cyan")
    table.add_column(first_header, style="bold")
    table.add_column(a.label, justify="right", style=_STYLE_A)
    table.add_column(b.label, justify="right", style=_STYLE_B)
    return table


def results_table(a: RunSummary, b: RunSummary) -> Table:
    """Side-by-side metrics of both runs."""
    table = _comparison_table(a, b, "Metric")

    def ms(value: float) -> str:
        return f"{format_number(value)}ms"

    rows = (
        (
            "Requests Completed",
            f"{a.success_count} / {a.requested_total}",
            f"{b.success_count} / {b.requested_total}",
        ),
        ("Success Rate", f"{format_number(a.success_rate)}%", f"{format_number(b.success_rate)}%"),
        (
            "Total Duration",
            f"{format_number(a.duration_ms / 1000)}s",
            f"{format_number(b.duration_ms / 1000)}s",
        ),
        ("Requests per Second", format_number(a.requests_per_second), format_number(b.requests_per_second)),
        (
            "Data Throughput",
            f"{format_bytes(a.bytes_per_second)}/s",
            f"{format_bytes(b.bytes_per_second)}/s",
        ),
        ("Avg Response Time", ms(a.latency_avg), ms(b.latency_avg)),
        ("Min Response Time", ms(a.latency_min), ms(b.latency_min)),
        ("Max Response Time", ms(a.latency_max), ms(b.latency_max)),
        ("p50 Response Time", ms(a.latency_p50), ms(b.latency_p50)),
        ("p90 Response Time", ms(a.latency_p90), ms(b.latency_p90)),
        ("p95 Response Time", ms(a.latency_p95), ms(b.latency_p95)),
        ("p99 Response Time", ms(a.latency_p99), ms(b.latency_p99)),
    )
    for row in rows:
        table.add_row(*row)
    return table


def status_code_table(a: RunSummary, b: RunSummary) -> Table:
    """Count of every HTTP status seen, with its share of requested requests."""
    table = _comparison_table(a, b, "Status Code")

    def cell(summary: RunSummary, code: str) -> str:
        count = summary.status_codes.get(code, 0)
        share = 100 * count / summary.requested_total if summary.requested_total else 0.0
        return f"{count} ({format_number(share, 1)}%)"

    codes = sorted(set(a.status_codes) | set(b.status_codes))
    for code in codes:
        table.add_row(code, cell(a, code), cell(b, code))
    return table


def error_overview(summary: RunSummary, limit: int = ERRORS_SHOWN) -> list[str]:
    """First ``limit`` error messages of a run, numbered.

    Returns:
        Lines to print, empty if the run has no error messages.
    """
    lines = [f"{i}. {error}" for i, error in enumerate(summary.error_samples[:limit], start=1)]
    hidden = summary.error_count - min(limit, len(summary.error_samples))
    if hidden > 0:
        lines.append(f"... and {hidden} more errors")
    return lines


# ---------------------------------------------------------------------------
# Response time distribution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LatencyBucket:
    """One row of the response time histogram."""

    start_ms: float
    end_ms: float
    count_a: int
    count_b: int


def latency_buckets(
    a: RunSummary,
    b: RunSummary,
    bucket_count: int = BUCKET_COUNT,
) -> list[LatencyBucket]:
    """Bucket the latency samples of both runs over a shared range.

    The range ends at the larger of ``min(p99 * 1.1, max)`` over the two
    runs. Samples beyond it land in the last bucket.

    Returns:
        ``bucket_count`` buckets, or none when no run has a positive latency.
    """
    upper = max(min(s.latency_p99 * 1.1, s.latency_max) for s in (a, b))
    if upper <= 0:
        return []

    size = upper / bucket_count
    counts = [[0, 0] for _ in range(bucket_count)]
    for column, summary in enumerate((a, b)):
        for sample in summary.latency_samples:
            index = min(bucket_count - 1, int(math.floor(sample / size)))
            counts[index][column] += 1

    return [
        LatencyBucket(start_ms=i * size, end_ms=(i + 1) * size, count_a=ca, count_b=cb)
        for i, (ca, cb) in enumerate(counts)
    ]


def latency_distribution(a: RunSummary, b: RunSummary, bar_width: int = BAR_WIDTH) -> Text:
    """Render the shared histogram as two bars per bucket."""
    buckets = latency_buckets(a, b)
    text = Text()
    if not buckets:
        text.append("No successful responses to plot.\n", style="dim")
        return text

    peak = max(max(bucket.count_a, bucket.count_b) for bucket in buckets)
    labels = [
        f"{format_number(bucket.start_ms, 0)}-{format_number(bucket.end_ms, 0)}ms" for bucket in buckets
    ]
    label_width = max(len(label) for label in labels)

    for label, bucket in zip(labels, buckets, strict=True):
        width_a = round(bucket.count_a / peak * bar_width) if peak else 0
        width_b = round(bucket.count_b / peak * bar_width) if peak else 0
        text.append(f"{label:<{label_width}} ")
        text.append("█" * width_a + " " * (bar_width - width_a), style=_STYLE_A)
        text.append(" ")
        text.append("█" * width_b, style=_STYLE_B)
        text.append("\n")

    text.append("■", style=_STYLE_A)
    text.append(f" - {a.label}, ")
    text.append("■", style=_STYLE_B)
    text.append(f" - {b.label}\n")
    return text


# ---------------------------------------------------------------------------
# Conclusion
# ---------------------------------------------------------------------------


def verdict_panel(comparison: ComparisonResult) -> Panel:
    """Scores of both servers and the winner box."""
    verdict = comparison.verdict
    if verdict.is_tie:
        body = Text.assemble(
            ("PERFORMANCE DIFFERENCE IS NEGLIGIBLE", "bold yellow"),
            "\nBoth servers perform similarly",
        )
    else:
        style = _STYLE_A if verdict.winner == comparison.server_a.label else _STYLE_B
        body = Text.assemble(
            (f"{verdict.winner} WINS", f"bold {style}"),
            f"\nOutperforms {verdict.loser} by {format_number(verdict.improvement_percent)}%",
        )

    scores = Text.assemble(
        f"{comparison.server_a.label} score: ",
        (f"{format_number(comparison.percent_a)}%", _STYLE_A),
        "\n",
        f"{comparison.server_b.label} score: ",
        (f"{format_number(comparison.percent_b)}%", _STYLE_B),
    )
    return Panel(Group(scores, Text(), body), box=box.SQUARE, expand=False)


def build_recommendations(a: RunSummary, b: RunSummary) -> list[str]:
    """Heuristic advice derived from both runs.

    Returns:
        At least one recommendation.
    """
    recommendations: list[str] = []

    if a.failure_count > 0 or b.failure_count > 0:
        recommendations.append("Investigate failed requests to improve reliability.")

    if a.latency_p95 > HIGH_P95_MS or b.latency_p95 > HIGH_P95_MS:
        recommendations.append(
            "High p95 response times detected. Consider optimizing slow paths in your code."
        )

    best_throughput = max(a.bytes_per_second, b.bytes_per_second)
    if best_throughput > 0:
        gap = abs(a.bytes_per_second - b.bytes_per_second) / best_throughput
        if gap > THROUGHPUT_GAP:
            recommendations.append(
                "Significant difference in throughput detected. The slower server may "
                "benefit from response compression or optimization."
            )

    if a.latency_cv > HIGH_LATENCY_CV or b.latency_cv > HIGH_LATENCY_CV:
        recommendations.append(
            "High variance in response times detected. Consider investigating "
            "resource contention or GC pauses."
        )

    if not recommendations:
        recommendations.append(ALL_GOOD)
    return recommendations


def summary_lines(comparison: ComparisonResult) -> list[str]:
    """Closing sentences, the better scoring server first."""
    a, b = comparison.server_a, comparison.server_b
    first, second = (a, b) if comparison.score_a > comparison.score_b else (b, a)

    lines = [
        f"{s.label} handled {format_number(s.requests_per_second)} requests/second "
        f"with {format_number(s.latency_avg)}ms average response time"
        for s in (first, second)
    ]

    if first.requests_per_second > second.requests_per_second and second.requests_per_second > 0:
        gain = (first.requests_per_second / second.requests_per_second - 1) * 100
        lines.append(f"{first.label} is {format_number(gain)}% faster in throughput")
    if second.latency_avg > first.latency_avg and first.latency_avg > 0:
        gain = (second.latency_avg / first.latency_avg - 1) * 100
        lines.append(f"{first.label} is {format_number(gain)}% faster in response time")
    return lines


def completion_time(comparison: ComparisonResult) -> datetime:
    """When the later of the two measured phases ended."""
    stamps = [
        s.completed_at for s in (comparison.server_a, comparison.server_b) if s.completed_at is not None
    ]
    return max(stamps) if stamps else datetime.now(tz=UTC)


# ---------------------------------------------------------------------------
# Full report
# ---------------------------------------------------------------------------


def report_renderables(
    comparison: ComparisonResult,
    config: BenchmarkConfig | None = None,
) -> list[RenderableType]:
    """All report sections in print order."""
    a, b = comparison.server_a, comparison.server_b
    parts: list[RenderableType] = [
        _section("BENCHMARK CONFIGURATION"),
        config_banner(comparison, config),
        Text(),
        _section("BENCHMARK RESULTS"),
        results_table(a, b),
        Text(),
        _section("STATUS CODE DISTRIBUTION"),
        status_code_table(a, b),
    ]

    if a.error_count or b.error_count:
        parts += [Text(), _section("ERROR OVERVIEW")]
        for summary, style in ((a, _STYLE_A), (b, _STYLE_B)):
            lines = error_overview(summary)
            if lines:
                parts.append(Text(f"{summary.label} Errors:", style=f"bold {style}"))
                parts.extend(Text(f"  {line}", style=style) for line in lines)

    parts += [
        Text(),
        _section("RESPONSE TIME DISTRIBUTION"),
        latency_distribution(a, b),
        _section("BENCHMARK CONCLUSION"),
        verdict_panel(comparison),
        Text(),
        _section("RECOMMENDATIONS"),
    ]
    parts.extend(
        Text(f"• {line}", style="green" if line == ALL_GOOD else "yellow")
        for line in build_recommendations(a, b)
    )
    parts += [Text(), _section("BENCHMARK SUMMARY")]
    parts.extend(Text(line) for line in summary_lines(comparison))
    parts += [
        Text(),
        Text(f"Benchmark completed at {completion_time(comparison).isoformat()}", style="dim"),
    ]
    return parts


def render_report(
    comparison: ComparisonResult,
    config: BenchmarkConfig | None = None,
    *,
    width: int = 100,
    color: bool = False,
) -> str:
    """Render the full comparison report to a string.

    Args:
        comparison: The comparison to report.
        config: Configuration of the run; adds warmup, concurrency and
            request settings to the banner.
        width: Console width in characters.
        color: Keep ANSI styling in the output.

    Returns:
        The report text.
    """
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=width,
        force_terminal=color,
        color_system="standard" if color else None,
        highlight=False,
        emoji=False,
    )
    for part in report_renderables(comparison, config):
        console.print(part)
    return buffer.getvalue()
