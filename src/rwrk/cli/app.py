"""Main Typer application: entry point for the ``rwrk`` CLI."""

from __future__ import annotations

import typer

from rwrk import __version__
from rwrk.cli.run import run_cmd

app = typer.Typer(
    name="rwrk",
    help="Process millions of HTTP requests within a time budget.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a deadline-bounded load test.")(run_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"rwrk {__version__}")
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
    """rwrk: process millions of HTTP requests within a time budget."""
