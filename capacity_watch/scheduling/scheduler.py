"""Interval scheduler with a single-flight guard around sweeps."""

import asyncio
import logging
from typing import Optional

from ..models.types import SweepOutcome
from .sweep import SweepCoordinator

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Runs sweeps on a fixed interval and on demand.

    Only one sweep runs at a time. A trigger that arrives while a sweep is
    running is dropped, not queued. Stopping the scheduler cancels future
    ticks but never the sweep in flight.
    """

    def __init__(self, coordinator: SweepCoordinator, interval_seconds: float = 100.0):
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self._timer: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """True while the interval timer is active."""
        return self._timer is not None and not self._timer.done()

    @property
    def sweep_in_progress(self) -> bool:
        return self._current is not None and not self._current.done()

    def trigger_now(self) -> Optional[asyncio.Task]:
        """Start a sweep unless one is already running.

        Returns:
            The new sweep task, or None if the trigger was dropped
        """
        # No await between the check and the assignment, so this is atomic
        # with respect to other coroutines on the loop.
        if self.sweep_in_progress:
            logger.info("Sweep already in progress, dropping trigger")
            return None
        self._current = asyncio.create_task(self.coordinator.run_sweep(), name="availability-sweep")
        return self._current

    async def run_now(self) -> SweepOutcome:
        """Run a sweep, or wait for the one in flight, and return its outcome."""
        task = self.trigger_now() or self._current
        return await asyncio.shield(task)

    def start(self) -> None:
        """Run a sweep immediately, then every interval."""
        if self.is_running:
            self._timer.cancel()
        self._timer = asyncio.create_task(self._tick_forever(), name="availability-scheduler")
        logger.info(f"Scheduler started, checking every {self.interval_seconds:g} seconds")

    def stop(self) -> None:
        """Cancel future sweeps. A sweep already running is left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Scheduler stopped")

    async def shutdown(self) -> None:
        """Stop the timer and wait for the sweep in flight, if any."""
        self.stop()
        if self.sweep_in_progress:
            logger.info("Waiting for in-flight sweep to finish")
            await asyncio.gather(self._current, return_exceptions=True)

    async def _tick_forever(self) -> None:
        while True:
            self.trigger_now()
            await asyncio.sleep(self.interval_seconds)
