"""Refresh scheduler - periodic refresh with cooperative cancellation"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from enum import Enum

from loguru import logger


def _check_interval(seconds: float) -> None:
    if not math.isfinite(seconds):
        raise ValueError(f"Refresh interval must be a finite number: {seconds}")
    if seconds < 0:
        raise ValueError(f"Refresh interval cannot be negative: {seconds}")


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class RefreshScheduler:
    """Drives periodic refresh cycles at a configurable interval

    Only one periodic task exists at a time. Changing the interval signals
    the current task to stop; a refresh already in flight finishes, only
    the next wake-up is suppressed.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[None]],
        interval: float = 0.0,
    ) -> None:
        """Initialise scheduler

        Args:
            refresh: Coroutine function running one full refresh
            interval: Initial interval in seconds (0 = manual only). The
                periodic task is not started until start() is called.
        """
        _check_interval(interval)
        self._refresh = refresh
        self._interval = float(interval)
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._retired: set[asyncio.Task] = set()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def state(self) -> SchedulerState:
        if self._task is not None and not self._task.done():
            return SchedulerState.RUNNING
        return SchedulerState.IDLE

    def start(self) -> None:
        """Start the periodic task for the current interval"""
        self.set_interval(self._interval)

    def set_interval(self, seconds: float) -> None:
        """Replace the schedule

        Any pending wake-up is cancelled. A positive interval starts a new
        periodic task, zero leaves the scheduler idle (manual refresh only).

        Raises:
            ValueError: If seconds is negative or not a finite number
        """
        _check_interval(seconds)

        self._cancel_current()
        self._interval = float(seconds)

        if self._interval == 0:
            logger.info("Refresh scheduler idle (manual refresh only)")
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run(self._interval, self._stop_event)
        )
        logger.info(f"Refresh scheduler running every {self._interval:g}s")

    async def trigger(self) -> None:
        """Run one refresh now without touching the schedule"""
        logger.debug("Manual refresh triggered")
        await self._run_refresh()

    async def stop(self) -> None:
        """Stop the periodic task and wait for any in-flight refresh"""
        self._cancel_current()
        if self._retired:
            await asyncio.gather(*self._retired, return_exceptions=True)
        logger.debug("Refresh scheduler stopped")

    def _cancel_current(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._retired.add(self._task)
            self._task.add_done_callback(self._retired.discard)
        self._task = None
        self._stop_event = None

    async def _run(self, interval: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except TimeoutError:
                pass
            if stop_event.is_set():
                break
            await self._run_refresh()

    async def _run_refresh(self) -> None:
        try:
            await self._refresh()
        except Exception:
            logger.exception("Scheduled refresh failed")
