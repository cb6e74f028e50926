"""Main Typer application, entry point for the ``duelbench`` CLI."""

from __future__ import annotations

import typer

from duelbench import __version__
from duelbench.cli.compare import compare_cmd
from duelbench.cli.report import report_cmd

app = typer.Typer(
    name="duelbench",
    help="Benchmark two HTTP servers head to head.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("compare", help="Benchmark both servers and print the comparison.")(compare_cmd)
app.command("report", help="Re-render a saved JSON export.")(report_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"duelbench {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """duelbench: benchmark two HTTP servers head to head."""
