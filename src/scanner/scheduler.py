"""Periodic, non-reentrant execution of scan cycles.

The Scheduler fires a cycle every ``interval_seconds``. A tick that arrives
while the previous cycle is still running is skipped, never queued, so slow
cycles cannot pile up behind each other.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from scanner.logging import get_logger

logger = get_logger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class CycleGuard:
    """Explicit IDLE/RUNNING flag guarding a single cycle.

    Acquire and release are synchronous, so check-and-set cannot be
    interleaved by another coroutine.
    """

    def __init__(self) -> None:
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    def try_acquire(self) -> bool:
        """Move to RUNNING. Returns False if a cycle is already running."""
        if self._state is RunState.RUNNING:
            return False
        self._state = RunState.RUNNING
        return True

    def release(self) -> None:
        self._state = RunState.IDLE


class Scheduler:
    """Runs ``cycle`` every ``interval_seconds`` under a CycleGuard.

    Args:
        cycle: Coroutine function running one scan cycle.
        interval_seconds: Time between ticks.
        name: Label used in log events.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[object]],
        interval_seconds: float,
        name: str = "scan",
    ) -> None:
        self._cycle = cycle
        self._interval = interval_seconds
        self._name = name
        self._guard = CycleGuard()
        self._stop_event = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

    @property
    def guard(self) -> CycleGuard:
        return self._guard

    async def trigger(self) -> bool:
        """Run one guarded cycle.

        Cycle errors are logged and swallowed so the next tick proceeds.

        Returns:
            False if the tick was skipped because a cycle was running.
        """
        if not self._guard.try_acquire():
            logger.warning("scan_cycle_skipped_still_running", scheduler=self._name)
            return False
        try:
            await self._cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("scan_cycle_error", scheduler=self._name, error=str(e), exc_info=True)
        finally:
            self._guard.release()
        return True

    def _spawn(self) -> None:
        task = asyncio.create_task(self.trigger())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self) -> None:
        """Tick until ``stop()`` is called, then wait for the running cycle."""
        self._stop_event.clear()
        logger.info("scheduler_started", scheduler=self._name, interval=self._interval)
        while not self._stop_event.is_set():
            self._spawn()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("scheduler_stopped", scheduler=self._name)

    def stop(self) -> None:
        """Stop ticking. The in-flight cycle, if any, runs to completion."""
        self._stop_event.set()
