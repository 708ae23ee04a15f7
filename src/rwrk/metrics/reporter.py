"""Derived throughput and success metrics for a finished run."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rwrk.metrics.models import Report

if TYPE_CHECKING:
    from rwrk.metrics.models import AggregateStats

BYTES_PER_MEGABYTE = 1_048_576


def build_report(
    aggregate: AggregateStats,
    elapsed_seconds: float,
    requested: int,
) -> Report:
    """Compute the run report.

    Pure function: the aggregate is not modified.

    Args:
        aggregate: Summed worker statistics.
        elapsed_seconds: Wall-clock duration of the run.
        requested: Requests originally asked for.

    Returns:
        The derived Report. Rates are 0.0 when no time elapsed, and the
        shortfall is only set if fewer requests completed than requested.
    """
    megabytes = aggregate.bytes_read / BYTES_PER_MEGABYTE
    if elapsed_seconds > 0:
        rps = aggregate.completed / elapsed_seconds
        transfer = megabytes / elapsed_seconds
    else:
        rps = 0.0
        transfer = 0.0

    success_rate = aggregate.successful / aggregate.completed if aggregate.completed else 0.0
    shortfall = (aggregate.completed, requested) if aggregate.completed < requested else None

    latency = aggregate.latency
    return Report(
        completed=aggregate.completed,
        successful=aggregate.successful,
        errors=aggregate.errors,
        requested=requested,
        elapsed_seconds=elapsed_seconds,
        bytes_read=aggregate.bytes_read,
        megabytes_read=megabytes,
        requests_per_second=rps,
        transfer_per_second=transfer,
        success_rate=success_rate,
        shortfall=shortfall,
        latency_mean=latency.mean(),
        latency_p50=latency.percentile(50.0),
        latency_p90=latency.percentile(90.0),
        latency_p99=latency.percentile(99.0),
        latency_max=latency.max(),
    )


def format_report(report: Report) -> list[str]:
    """Render the report as wrk-style summary lines."""
    lines = [
        f"  {report.completed} requests in {report.elapsed_seconds:.2f}s, "
        f"{report.megabytes_read:.2f}MB read",
    ]
    if report.errors > 0:
        lines.append(f"  Non-2xx responses: {report.errors}")
    lines.append(f"Requests/sec:      {report.requests_per_second:.2f}")
    lines.append(f"Transfer/sec:      {report.transfer_per_second:.2f}MB")
    if report.shortfall is not None:
        completed, requested = report.shortfall
        lines.append(f"Completed:         {completed}/{requested} tasks")
    return lines
