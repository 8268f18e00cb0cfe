"""Scheduling — wall clock, event-loop timers, and the debounced task built on them.

Invariants:
    - DebouncedTask holds at most one armed timer: arm() re-arms, cancel() disarms
    - A fired timer disarms itself before invoking the callback
    - Callbacks are synchronous; async work is spawned by the callback owner
    - LoopScheduler requires a running event loop at call_later() time

Design Decisions:
    - Debounce over an injectable Scheduler: tests drive time with a manual
      scheduler instead of sleeping through real windows
    - loop.call_later over asyncio.sleep tasks: cancellation is a handle call,
      no task to await or leak
"""

import asyncio
import time
from typing import Callable

from cardsync.core.repository_protocols import Scheduler, TimerHandle


class SystemClock:
    def now(self) -> float:
        return time.time()


class LoopScheduler:
    """Scheduler on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class DebouncedTask:
    """Arm/cancel/re-arm wrapper: the callback fires once, `delay` after the last arm()."""

    def __init__(
        self, scheduler: Scheduler, delay: float, callback: Callable[[], None],
    ):
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._handle: TimerHandle | None = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        self._handle = self._scheduler.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
