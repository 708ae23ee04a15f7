"""Deadline coordination: a one-way cancellation signal and its timer."""

from __future__ import annotations

import asyncio
import signal
import sys

from rwrk._internal.errors import ConfigError
from rwrk._internal.logging import get_logger

logger = get_logger("engine.deadline")


class CancellationSignal:
    """One-way flag broadcast to every worker.

    The flag moves from armed to tripped at most once and never reverts.
    Workers only read it; the DeadlineCoordinator is the sole writer.
    All access happens on the event loop thread, so no lock is needed.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_tripped(self) -> bool:
        """Return True once the signal has been tripped."""
        return self._event.is_set()

    def trip(self) -> bool:
        """Trip the signal.

        Returns:
            True if this call performed the transition, False if the
            signal was already tripped.
        """
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        """Suspend until the signal is tripped."""
        await self._event.wait()


class DeadlineCoordinator:
    """Trips a CancellationSignal once the time budget elapses.

    The timer is a loop callback, not a task, so an early finish never
    waits on it. ``release()`` trips the signal and drops the timer.

    Attributes:
        budget_seconds: Time budget in seconds.
        signal: The signal this coordinator owns.
    """

    def __init__(
        self,
        budget_seconds: float,
        cancellation: CancellationSignal | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            budget_seconds: Seconds until the signal trips. Zero trips on
                the next loop iteration after ``arm()``.
            cancellation: Signal to drive. A fresh one is created if None.

        Raises:
            ConfigError: If ``budget_seconds`` is negative.
        """
        if budget_seconds < 0:
            msg = f"budget_seconds must be >= 0, got: {budget_seconds}"
            raise ConfigError(msg)
        self.budget_seconds = budget_seconds
        self.signal = cancellation or CancellationSignal()
        self._timer: asyncio.TimerHandle | None = None
        self._tripped_by_deadline = False

    @property
    def armed(self) -> bool:
        """Return True while the timer is pending."""
        return self._timer is not None and not self.signal.is_tripped

    @property
    def tripped_by_deadline(self) -> bool:
        """Return True if the budget elapsed before release."""
        return self._tripped_by_deadline

    def arm(self) -> None:
        """Start the budget timer on the running event loop.

        Raises:
            RuntimeError: If called twice or outside a running loop.
        """
        if self._timer is not None:
            msg = "DeadlineCoordinator is already armed"
            raise RuntimeError(msg)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.budget_seconds, self._on_deadline)
        logger.debug("Deadline armed: %.3fs", self.budget_seconds)

    def release(self) -> None:
        """Trip the signal (idempotent) and cancel any pending timer."""
        self.signal.trip()
        if self._timer is not None:
            self._timer.cancel()

    def interrupt(self) -> None:
        """Trip the signal ahead of the deadline."""
        if self.signal.trip():
            logger.info("Interrupted, stopping workers")

    def install_signal_handlers(self) -> None:
        """Make SIGINT and SIGTERM trip the signal early."""
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.interrupt)

    def remove_signal_handlers(self) -> None:
        """Remove the handlers added by ``install_signal_handlers``."""
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    def _on_deadline(self) -> None:
        if self.signal.trip():
            self._tripped_by_deadline = True
            logger.debug("Deadline reached after %.3fs", self.budget_seconds)
