"""Join all workers and reduce their stats."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from rwrk._internal.logging import get_logger
from rwrk.metrics.models import AggregateStats, WorkerStats

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rwrk.engine.deadline import DeadlineCoordinator

logger = get_logger("engine.aggregator")


async def aggregate(
    tasks: Sequence[asyncio.Future[WorkerStats]],
    coordinator: DeadlineCoordinator,
) -> AggregateStats:
    """Wait for every worker and sum their stats.

    A worker that raised contributes zero and never blocks the others.
    Once all workers are joined the coordinator is released, which
    trips the signal and drops its pending timer.

    Args:
        tasks: One future per worker, resolving to its WorkerStats.
        coordinator: Deadline coordinator of the run.

    Returns:
        The element-wise sum of all worker stats.
    """
    results = await asyncio.gather(*tasks, return_exceptions=True)

    total = AggregateStats()
    for index, result in enumerate(results):
        if isinstance(result, WorkerStats):
            total.add(result)
            continue
        total.add_fault()
        logger.warning(
            "Worker %d terminated abnormally: %s: %s",
            index,
            type(result).__name__,
            result,
        )

    coordinator.release()
    return total
