"""Scheduling — verifies the debounced task and the event-loop scheduler.

Tests:
    - arm() re-arms: only the last arm fires, once
    - cancel() disarms; a fired task is disarmed
    - LoopScheduler runs callbacks on the running loop
"""

import asyncio

from cardsync.infrastructure.scheduler import DebouncedTask, LoopScheduler, SystemClock
from tests.fakes import ManualScheduler


def test_rearming_fires_once_after_last_arm():
    scheduler = ManualScheduler()
    fired = []
    task = DebouncedTask(scheduler, 0.8, lambda: fired.append(scheduler.time))

    task.arm()
    scheduler.advance(0.5)
    task.arm()
    scheduler.advance(0.5)
    assert fired == []

    scheduler.advance(0.5)
    assert fired == [1.5]
    assert not task.is_armed


def test_cancel_disarms():
    scheduler = ManualScheduler()
    fired = []
    task = DebouncedTask(scheduler, 0.8, lambda: fired.append(1))
    task.arm()
    assert task.is_armed
    task.cancel()
    scheduler.advance(5)
    assert fired == []
    assert not task.is_armed


async def test_loop_scheduler_runs_callback():
    fired = asyncio.Event()
    task = DebouncedTask(LoopScheduler(), 0.01, fired.set)
    task.arm()
    await asyncio.wait_for(fired.wait(), timeout=2)
    assert not task.is_armed


def test_system_clock_is_epoch_seconds():
    assert SystemClock().now() > 1_600_000_000
