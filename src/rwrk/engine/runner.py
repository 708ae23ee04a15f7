"""Top-level load run orchestrator."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from rwrk._internal.errors import EngineError, RwrkError
from rwrk._internal.logging import get_logger
from rwrk.engine.aggregator import aggregate
from rwrk.engine.deadline import DeadlineCoordinator
from rwrk.engine.executor import HttpExecutor, PoolSettings
from rwrk.engine.partition import partition
from rwrk.engine.worker import WorkerLoop
from rwrk.metrics.models import RunResult
from rwrk.metrics.reporter import build_report, format_report

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from rwrk._internal.config import RunConfig
    from rwrk.engine.executor import RequestExecutor

    ExecutorFactory = Callable[[RunConfig], AbstractAsyncContextManager[RequestExecutor]]

logger = get_logger("engine.runner")


def http_executor_factory(config: RunConfig) -> HttpExecutor:
    """Build the aiohttp executor from the run's pool settings."""
    return HttpExecutor(
        PoolSettings(
            max_idle_per_host=config.pool_max_idle_per_host,
            idle_timeout=config.pool_idle_timeout,
            request_timeout=config.request_timeout,
        )
    )


class LoadRunner:
    """Orchestrates a deadline-bounded load run.

    Wires together: partitioning, the shared executor, the deadline
    coordinator, the worker pool, aggregation and reporting.

    Attributes:
        config: Configuration of the run.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        executor_factory: ExecutorFactory | None = None,
        handle_signals: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated run configuration.
            executor_factory: Builds the async context manager yielding the
                request executor. Defaults to the aiohttp executor.
            handle_signals: If True, SIGINT/SIGTERM stop the run early.
        """
        self.config = config
        self._executor_factory = executor_factory or http_executor_factory
        self._handle_signals = handle_signals

    def run(self) -> RunResult:
        """Execute the run on a fresh event loop and block until done.

        Raises:
            EngineError: If the run fails outside of individual requests.
        """
        return asyncio.run(self.arun())

    async def arun(self) -> RunResult:
        """Execute the run on the current event loop.

        Returns:
            RunResult with the aggregate and the derived report.

        Raises:
            EngineError: If the run fails outside of individual requests.
        """
        config = self.config
        logger.info("Running %gs test @ %s", config.timeout_seconds, config.url)
        logger.info("  %d workers and %d max tasks", config.workers, config.total_tasks)
        logger.info(
            "  pool: %d max idle/host, %gs idle timeout",
            config.pool_max_idle_per_host,
            config.pool_idle_timeout,
        )

        slices = partition(config.total_tasks, config.workers)
        coordinator = DeadlineCoordinator(config.timeout_seconds)
        start = time.monotonic()

        try:
            async with self._executor_factory(config) as executor:
                coordinator.arm()
                if self._handle_signals:
                    coordinator.install_signal_handlers()
                try:
                    tasks = [
                        asyncio.create_task(
                            WorkerLoop(
                                worker_slice,
                                config.url,
                                executor,
                                coordinator.signal,
                                race_cancellation=config.race_cancellation,
                            ).run(),
                            name=f"rwrk-worker-{worker_slice.worker_index}",
                        )
                        for worker_slice in slices
                    ]
                    total = await aggregate(tasks, coordinator)
                    elapsed = time.monotonic() - start
                finally:
                    coordinator.release()
                    if self._handle_signals:
                        coordinator.remove_signal_handlers()
        except RwrkError:
            raise
        except Exception as exc:
            logger.exception("Load run failed")
            raise EngineError("Load run failed") from exc

        report = build_report(total, elapsed, config.total_tasks)
        for line in format_report(report):
            logger.info("%s", line)
        if total.faulted_workers:
            logger.warning("%d workers terminated abnormally", total.faulted_workers)

        return RunResult(
            config=config,
            aggregate=total,
            report=report,
            elapsed_seconds=elapsed,
            deadline_hit=coordinator.tripped_by_deadline,
        )
