"""``rwrk run``: execute a load run and print the summary."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rwrk._internal.config import DEFAULT_TIMEOUT_SECONDS, DEFAULT_TOTAL_TASKS, RunConfig
from rwrk._internal.errors import RwrkError
from rwrk._internal.logging import parse_log_level, setup_logging
from rwrk.engine.runner import LoadRunner

if TYPE_CHECKING:
    from rwrk.metrics.models import RunResult

console = Console(stderr=True)


def _print_summary(result: RunResult) -> None:
    """Print a final summary table after the run completes.

    Args:
        result: Completed run result.
    """
    report = result.report
    table = Table(
        title="Run Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Requests", str(report.completed))
    table.add_row("Duration", f"{report.elapsed_seconds:.2f}s")
    table.add_row("Data Read", f"{report.megabytes_read:.2f}MB")
    if report.errors > 0:
        table.add_row("Non-2xx / Failed", f"[red]{report.errors}[/red]")
    table.add_row("Requests/sec", f"{report.requests_per_second:.2f}")
    table.add_row("Transfer/sec", f"{report.transfer_per_second:.2f}MB")
    table.add_row("Success Rate", f"{report.success_rate * 100:.2f}%")
    table.add_row("Latency avg", f"{report.latency_mean:.2f}ms")
    table.add_row("Latency p50", f"{report.latency_p50:.2f}ms")
    table.add_row("Latency p99", f"{report.latency_p99:.2f}ms")
    if report.shortfall is not None:
        completed, requested = report.shortfall
        table.add_row("Completed", f"[yellow]{completed}/{requested} tasks[/yellow]")

    console.print(table)


def run_cmd(
    url: str = typer.Option(
        ...,
        "--url",
        "-u",
        help="Target URL (use {id} as placeholder).",
    ),
    total_tasks: int = typer.Option(
        DEFAULT_TOTAL_TASKS,
        "--total-tasks",
        "-n",
        help="Total number of requests to issue.",
        min=0,
    ),
    timeout_secs: float = typer.Option(
        DEFAULT_TIMEOUT_SECONDS,
        "--timeout-secs",
        "-t",
        help="Time budget for the whole run in seconds.",
        min=0.0,
    ),
    worker_count: int | None = typer.Option(
        None,
        "--worker-count",
        "-w",
        help="Concurrent workers (default: 48 per CPU core).",
        min=1,
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: trace, debug, info, warn, or error.",
    ),
    pool_max_idle_per_host: int | None = typer.Option(
        None,
        "--pool-max-idle-per-host",
        "-c",
        help="Max pooled connections per host (default: 2x worker count).",
        min=1,
    ),
    pool_idle_timeout: float | None = typer.Option(
        None,
        "--pool-idle-timeout",
        "-i",
        help="Idle connection timeout in seconds (default: 90).",
    ),
    request_timeout: float | None = typer.Option(
        None,
        "--request-timeout",
        help="Per-request timeout in seconds (default: 30).",
    ),
    no_race: bool = typer.Option(
        False,
        "--no-race",
        help="Only observe the deadline between requests.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON logs.",
    ),
    fail_on_errors: bool = typer.Option(
        False,
        "--fail-on-errors",
        help="Exit non-zero if any request failed or was non-2xx.",
    ),
) -> None:
    """Execute a deadline-bounded load run."""
    try:
        setup_logging(level=parse_log_level(log_level), json_format=json_logs)
        config = RunConfig.create(
            url,
            total_tasks=total_tasks,
            timeout_seconds=timeout_secs,
            workers=worker_count,
            pool_max_idle_per_host=pool_max_idle_per_host,
            pool_idle_timeout=pool_idle_timeout,
            request_timeout=request_timeout,
            race_cancellation=not no_race,
        )
    except RwrkError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Target:[/bold]   {config.url}\n"
            f"[bold]Tasks:[/bold]    {config.total_tasks}\n"
            f"[bold]Workers:[/bold]  {config.workers}\n"
            f"[bold]Budget:[/bold]   {config.timeout_seconds}s",
            title="rwrk",
            border_style="cyan",
        )
    )

    try:
        result = LoadRunner(config, handle_signals=True).run()
    except RwrkError as exc:
        console.print(f"[red]Load run failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if fail_on_errors and result.report.errors > 0:
        console.print(
            f"[red]FAIL:[/red] {result.report.errors} of {result.report.completed} "
            "requests failed or returned non-2xx"
        )
        raise typer.Exit(code=1)
