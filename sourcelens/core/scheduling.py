from __future__ import annotations

"""Timer scheduling for debounced and delayed work.

The engine never keeps raw timer ids around. Work that must be delayed is
wrapped in a :class:`ScheduledTask`, which cancels its pending run before
scheduling a new one.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

__all__ = [
    "TimerHandle",
    "Scheduler",
    "AsyncioScheduler",
    "ScheduledTask",
]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Run ``callback`` once after ``delay_ms`` on the engine's event loop."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0, delay_ms) / 1000.0, callback)


class ScheduledTask:
    """A cancel-and-reschedule unit of delayed work.

    Parameters
    ----------
    scheduler : Scheduler
        Timer source.
    delay_ms : int
        Quiet period before the callback runs.
    callback : Callable[[], None]
        Work to run. Exceptions are logged, never propagated into the loop.
    name : str
        Used in log messages.

    Notes
    -----
    :meth:`schedule` drops any pending run, so a burst of calls results in a
    single run ``delay_ms`` after the last call (debounce).
    :meth:`schedule_series` queues independent runs at several delays, used
    for the staggered scans after enabling.
    """

    def __init__(self, scheduler: Scheduler, delay_ms: int, callback: Callable[[], None], *, name: str = "task") -> None:
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self._callback = callback
        self.name = name
        self._handles: List[TimerHandle] = []
        self.run_count = 0

    @property
    def pending(self) -> bool:
        return bool(self._handles)

    def schedule(self) -> None:
        self.cancel()
        self._handles.append(self._scheduler.call_later(self.delay_ms, self._fire_once))

    def schedule_series(self, delays_ms) -> None:
        self.cancel()
        for delay in delays_ms:
            holder: List[TimerHandle] = []
            handle = self._scheduler.call_later(int(delay), lambda h=holder: self._fire_series(h))
            holder.append(handle)
            self._handles.append(handle)

    def cancel(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.cancel()

    # ------------------------------------------------------------------
    def _fire_once(self) -> None:
        self._handles = []
        self._run()

    def _fire_series(self, holder: List[TimerHandle]) -> None:
        if holder:
            self._handles = [h for h in self._handles if h is not holder[0]]
        self._run()

    def _run(self) -> None:
        self.run_count += 1
        logger.debug("Scheduled task '%s' executing (run %d)", self.name, self.run_count)
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled task '%s' failed", self.name)
