"""Per-worker request loop with cooperative deadline cancellation."""

from __future__ import annotations

import asyncio
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from rwrk._internal.errors import BodyReadError, RequestError
from rwrk._internal.logging import get_logger
from rwrk.engine.executor import is_success
from rwrk.engine.partition import build_target
from rwrk.metrics.models import WorkerStats

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from rwrk.engine.deadline import CancellationSignal
    from rwrk.engine.executor import RequestExecutor, Response
    from rwrk.engine.partition import WorkerSlice

logger = get_logger("engine.worker")


class WorkerState(Enum):
    """State machine for a worker loop."""

    CREATED = auto()
    RUNNING = auto()
    EXHAUSTED = auto()
    CANCELLED = auto()
    FINISHED = auto()


class WorkerLoop:
    """Issues one worker's slice of requests back-to-back.

    State machine: CREATED -> RUNNING -> EXHAUSTED -> FINISHED
                                      -> CANCELLED -> FINISHED

    The loop checks the cancellation signal before every request. With
    ``race_cancellation`` enabled, each send also races the signal so an
    in-flight request is abandoned the moment the deadline trips. Body
    draining of a response already received is never interrupted.

    Request-level failures are converted into counters; only
    cancellation cuts the slice short.

    Attributes:
        worker_slice: The requests assigned to this worker.
        url: Target URL, optionally containing ``{id}``.
    """

    def __init__(
        self,
        worker_slice: WorkerSlice,
        url: str,
        executor: RequestExecutor,
        cancellation: CancellationSignal,
        *,
        race_cancellation: bool = True,
    ) -> None:
        """Initialize the worker loop.

        Args:
            worker_slice: Request count and starting identifier for this worker.
            url: Target URL, optionally containing ``{id}``.
            executor: Shared request executor.
            cancellation: Read-only handle to the deadline signal.
            race_cancellation: Race each send against the signal.
        """
        self.worker_slice = worker_slice
        self.url = url
        self._executor = executor
        self._cancellation = cancellation
        self._race_cancellation = race_cancellation
        self._state = WorkerState.CREATED
        self._stats = WorkerStats()

    @property
    def state(self) -> WorkerState:
        """Return the current worker state."""
        return self._state

    @property
    def index(self) -> int:
        """Return the index of this worker in the pool."""
        return self.worker_slice.worker_index

    async def run(self) -> WorkerStats:
        """Execute the slice and return this worker's stats.

        Returns:
            The accumulated WorkerStats. No further mutation happens
            after it is returned.
        """
        self._state = WorkerState.RUNNING
        outcome = WorkerState.EXHAUSTED

        for offset in range(self.worker_slice.request_count):
            if self._cancellation.is_tripped:
                outcome = WorkerState.CANCELLED
                break

            target = build_target(self.url, self.worker_slice.start_id + offset)
            started = time.monotonic()

            try:
                response = await self._send(target)
            except RequestError as exc:
                self._stats.completed += 1
                logger.debug("Worker %d request to %s failed: %s", self.index, target, exc)
                continue

            if response is None:
                outcome = WorkerState.CANCELLED
                break

            await self._consume(response, target, started)

        self._state = outcome
        logger.debug(
            "Worker %d %s: completed=%d, successful=%d, bytes=%d",
            self.index,
            outcome.name.lower(),
            self._stats.completed,
            self._stats.successful,
            self._stats.bytes_read,
        )
        self._state = WorkerState.FINISHED
        return self._stats

    async def _send(self, target: str) -> Response | None:
        """Send one request, returning None if cancellation won the race."""
        if not self._race_cancellation:
            return await self._executor.send(target)
        return await _first_of(self._executor.send(target), self._cancellation.wait())

    async def _consume(self, response: Response, target: str, started: float) -> None:
        """Classify and drain one response into the worker's counters."""
        success = is_success(response.status)
        drained = 0
        try:
            async for chunk in response.iter_chunks():
                drained += len(chunk)
        except BodyReadError as exc:
            # Partial bytes are discarded and success is not credited.
            self._stats.completed += 1
            logger.debug("Worker %d body read from %s failed: %s", self.index, target, exc)
            return
        finally:
            response.release()

        self._stats.completed += 1
        self._stats.bytes_read += drained
        if success:
            self._stats.successful += 1
        self._stats.latency.record_ms((time.monotonic() - started) * 1000)


async def _first_of(request: Awaitable[Response], tripped: Awaitable[None]) -> Response | None:
    """Race a send against the cancellation signal.

    Returns the response if the send finished first (or at the same
    time), None if the signal won. A losing send is cancelled, and a
    response that still slipped through is released unread.

    Raises:
        RequestError: If the send finished first with a failure.
    """
    request_task = asyncio.ensure_future(request)
    tripped_task = asyncio.ensure_future(tripped)
    try:
        done, _pending = await asyncio.wait(
            {request_task, tripped_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        request_task.cancel()
        tripped_task.cancel()
        raise

    if request_task in done:
        tripped_task.cancel()
        return request_task.result()

    request_task.cancel()
    # Cancellation of the calling task propagates out of this wait.
    await asyncio.wait({request_task})
    if request_task.cancelled() or request_task.exception() is not None:
        return None
    request_task.result().release()
    return None
