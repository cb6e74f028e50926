"""``duelbench compare``: benchmark both servers with live progress output."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from duelbench._internal.config import load_config, validate_config
from duelbench._internal.errors import ComparisonError, ConfigError
from duelbench._internal.logging import setup_logging
from duelbench.engine.runner import Phase, run_comparison
from duelbench.report.export import write_json
from duelbench.report.render import render_report

if TYPE_CHECKING:
    from duelbench._internal.config import BenchmarkConfig

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Option helpers
# ---------------------------------------------------------------------------


def _parse_headers(raw: list[str] | None) -> dict[str, str]:
    """Parse repeated ``--header 'Name: value'`` options.

    Raises:
        typer.BadParameter: If a header has no ``:`` separator or no name.
    """
    headers: dict[str, str] = {}
    for item in raw or []:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            msg = f"Header must look like 'Name: value', got: {item!r}"
            raise typer.BadParameter(msg)
        headers[name.strip()] = value.strip()
    return headers


def _build_config(overrides: dict[str, Any]) -> BenchmarkConfig:
    """Environment defaults with every explicitly passed flag applied on top."""
    base = load_config()
    changes = {key: value for key, value in overrides.items() if value is not None}
    return validate_config(dataclasses.replace(base, **changes))


def _config_panel(config: BenchmarkConfig) -> Panel:
    return Panel(
        f"[bold]{config.server_a_label}:[/bold] {config.server_a_target}\n"
        f"[bold]{config.server_b_label}:[/bold] {config.server_b_target}\n"
        f"[bold]Requests:[/bold]    {config.benchmark_requests} "
        f"(+{config.warmup_requests} warmup)\n"
        f"[bold]Concurrency:[/bold] {config.concurrency} ({config.mode})\n"
        f"[bold]Method:[/bold]      {config.method}",
        title="duelbench",
        border_style="cyan",
    )


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def compare_cmd(
    server_a: str | None = typer.Option(
        None,
        "--server-a",
        help="Base URL of the first server [env: DUELBENCH_SERVER_A].",
    ),
    server_b: str | None = typer.Option(
        None,
        "--server-b",
        help="Base URL of the second server [env: DUELBENCH_SERVER_B].",
    ),
    label_a: str | None = typer.Option(
        None,
        "--label-a",
        help="Display name of the first server.",
    ),
    label_b: str | None = typer.Option(
        None,
        "--label-b",
        help="Display name of the second server.",
    ),
    warmup: int | None = typer.Option(
        None,
        "--warmup",
        help="Throwaway requests before measuring [env: DUELBENCH_WARMUP].",
    ),
    requests: int | None = typer.Option(
        None,
        "--requests",
        "-n",
        help="Measured requests per server [env: DUELBENCH_REQUESTS].",
    ),
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        "-c",
        help="Requests in flight at once [env: DUELBENCH_CONCURRENCY].",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds [env: DUELBENCH_TIMEOUT].",
    ),
    path: str | None = typer.Option(
        None,
        "--path",
        help="Request path appended to both URLs [env: DUELBENCH_PATH].",
    ),
    method: str | None = typer.Option(
        None,
        "--method",
        "-X",
        help="HTTP method [env: DUELBENCH_METHOD].",
    ),
    body: str | None = typer.Option(
        None,
        "--body",
        help="Request body, sent for non-GET methods [env: DUELBENCH_BODY].",
    ),
    header: list[str] | None = typer.Option(
        None,
        "--header",
        "-H",
        help="Extra request header 'Name: value'. Repeatable.",
    ),
    mode: str | None = typer.Option(
        None,
        "--mode",
        help=(
            "'batch' joins each batch of --concurrency requests before the next; "
            "'window' keeps --concurrency requests in flight continuously and "
            "reports different throughput than batch mode."
        ),
    ),
    max_errors: int | None = typer.Option(
        None,
        "--max-errors",
        help="Error messages kept per server (default: 100).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of stdout.",
    ),
    json_output: Path | None = typer.Option(
        None,
        "--json",
        help="Also write a machine-readable JSON export to this path.",
    ),
    color: bool = typer.Option(
        False,
        "--color",
        help="Keep ANSI colors in the report.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit log records as JSON lines on stderr.",
    ),
) -> None:
    """Benchmark server A, then server B, and print the comparison."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, json_format=log_json)

    try:
        config = _build_config(
            {
                "server_a_url": server_a,
                "server_b_url": server_b,
                "server_a_label": label_a,
                "server_b_label": label_b,
                "warmup_requests": warmup,
                "benchmark_requests": requests,
                "concurrency": concurrency,
                "request_timeout": timeout,
                "path": path,
                "method": method.upper() if method else None,
                "body": body,
                "headers": _parse_headers(header) or None,
                "mode": mode,
                "max_error_samples": max_errors,
                "output": output,
                "json_output": json_output,
            }
        )
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(_config_panel(config))

    progress = Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )
    tasks: dict[str, TaskID] = {}

    def _on_phase(label: str, phase: Phase) -> None:
        if phase is Phase.WARMUP:
            progress.console.print(f"[bold cyan]Warming up {label}...[/bold cyan]")
        else:
            progress.console.print(f"[bold cyan]Running benchmark on {label}...[/bold cyan]")
            tasks[label] = progress.add_task(label, total=config.benchmark_requests)

    def _on_progress(label: str, completed: int, total: int) -> None:
        task_id = tasks.get(label)
        if task_id is not None:
            progress.update(task_id, completed=completed, total=total)

    try:
        with progress:
            comparison = run_comparison(config, on_phase=_on_phase, on_progress=_on_progress)
    except ComparisonError as exc:
        for failure in exc.failures:
            console.print(f"[red]Benchmark failed:[/red] {failure}")
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    text = render_report(comparison, config, color=color)
    if config.output is None:
        typer.echo(text, nl=False)
    else:
        config.output.parent.mkdir(parents=True, exist_ok=True)
        config.output.write_text(text, encoding="utf-8")
        console.print(f"[green]Report written to[/green] {config.output}")

    if config.json_output is not None:
        write_json(comparison, config.json_output)
        console.print(f"[green]JSON export written to[/green] {config.json_output}")
