"""``duelbench report``: re-render a comparison saved with ``--json``."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from duelbench._internal.errors import DuelBenchError
from duelbench.report.export import load_json
from duelbench.report.render import render_report

console = Console(stderr=True)


def report_cmd(
    export_file: Path = typer.Argument(
        ...,
        help="JSON export written by 'duelbench compare --json'.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of stdout.",
    ),
    color: bool = typer.Option(
        False,
        "--color",
        help="Keep ANSI colors in the report.",
    ),
    width: int = typer.Option(
        100,
        "--width",
        help="Report width in characters.",
        min=40,
    ),
) -> None:
    """Re-render a saved comparison."""
    try:
        comparison = load_json(export_file)
    except DuelBenchError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    text = render_report(comparison, width=width, color=color)
    if output is None:
        typer.echo(text, nl=False)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Report written to[/green] {output}")
