"""Statistics and result dataclasses for rwrk."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rwrk.metrics.histogram import LatencyHistogram

if TYPE_CHECKING:
    from rwrk._internal.config import RunConfig

__all__ = [
    "AggregateStats",
    "Report",
    "RunResult",
    "WorkerStats",
]


@dataclass
class WorkerStats:
    """Counters owned by a single worker.

    Only the owning worker mutates an instance, and it is handed over by
    value when the worker finishes.

    Attributes:
        completed: Requests attempted and resolved, successful or not.
        successful: Requests with a 2xx status and a fully drained body.
        bytes_read: Body bytes of fully drained responses.
        latency: Latency of fully drained responses.
    """

    completed: int = 0
    successful: int = 0
    bytes_read: int = 0
    latency: LatencyHistogram = field(default_factory=LatencyHistogram)


@dataclass
class AggregateStats:
    """Element-wise sum of all WorkerStats.

    Attributes:
        completed: Total completed requests.
        successful: Total successful requests.
        bytes_read: Total body bytes read.
        workers: Number of workers joined.
        faulted_workers: Workers that terminated abnormally and contributed zero.
        latency: Merged latency histogram.
    """

    completed: int = 0
    successful: int = 0
    bytes_read: int = 0
    workers: int = 0
    faulted_workers: int = 0
    latency: LatencyHistogram = field(default_factory=LatencyHistogram)

    @property
    def errors(self) -> int:
        """Completed requests that did not succeed."""
        return self.completed - self.successful

    def add(self, stats: WorkerStats) -> None:
        """Fold one worker's stats into the aggregate."""
        self.completed += stats.completed
        self.successful += stats.successful
        self.bytes_read += stats.bytes_read
        self.workers += 1
        self.latency.merge(stats.latency)

    def add_fault(self) -> None:
        """Count a worker that contributed nothing."""
        self.workers += 1
        self.faulted_workers += 1


@dataclass(frozen=True)
class Report:
    """Derived metrics of a finished run.

    Attributes:
        completed: Total completed requests.
        successful: Total successful requests.
        errors: Completed requests that did not succeed.
        requested: Requests originally asked for.
        elapsed_seconds: Wall-clock duration of the run.
        bytes_read: Total body bytes read.
        megabytes_read: ``bytes_read`` in MiB.
        requests_per_second: Completed requests per second.
        transfer_per_second: MiB read per second.
        success_rate: Fraction of completed requests that succeeded.
        shortfall: ``(completed, requested)`` if the run was cut short,
            None otherwise.
        latency_mean: Mean latency in milliseconds.
        latency_p50: 50th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        latency_max: Maximum latency (ms).
    """

    completed: int
    successful: int
    errors: int
    requested: int
    elapsed_seconds: float
    bytes_read: int
    megabytes_read: float
    requests_per_second: float
    transfer_per_second: float
    success_rate: float
    shortfall: tuple[int, int] | None = None
    latency_mean: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p99: float = 0.0
    latency_max: float = 0.0


@dataclass
class RunResult:
    """Complete result of a load run.

    Attributes:
        config: Configuration the run was executed with.
        aggregate: Summed worker statistics.
        report: Derived metrics.
        elapsed_seconds: Wall-clock duration of the run.
        deadline_hit: True if the time budget elapsed before all
            workers finished.
    """

    config: RunConfig
    aggregate: AggregateStats
    report: Report
    elapsed_seconds: float
    deadline_hit: bool = False
