"""rwrk: deadline-bounded concurrent HTTP load generator."""

from __future__ import annotations

from rwrk._internal.config import RunConfig
from rwrk.engine.deadline import CancellationSignal, DeadlineCoordinator
from rwrk.engine.partition import WorkerSlice, partition
from rwrk.engine.runner import LoadRunner
from rwrk.metrics.models import AggregateStats, Report, RunResult, WorkerStats

__version__ = "0.1.0"

__all__ = [
    "AggregateStats",
    "CancellationSignal",
    "DeadlineCoordinator",
    "LoadRunner",
    "Report",
    "RunConfig",
    "RunResult",
    "WorkerSlice",
    "WorkerStats",
    "partition",
]
