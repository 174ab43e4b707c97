from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Set

_LOGGER = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class ScheduledTask:
    """Cancellation token for one delayed callback.

    Cancelling stops the timer. A callback that already started keeps running;
    its owner is expected to check its own "still active" state.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cancelled = False
        self._fired = False
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> bool:
        return not self._cancelled and not self._fired

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _mark_fired(self) -> None:
        self._fired = True
        self._timer = None


class Scheduler(Protocol):
    def call_later(
        self, delay: float, callback: TimerCallback, *, name: str = ""
    ) -> ScheduledTask:
        ...


class LoopScheduler:
    """Scheduler on the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._running: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(
        self, delay: float, callback: TimerCallback, *, name: str = ""
    ) -> ScheduledTask:
        task = ScheduledTask(name)

        def _fire() -> None:
            if task.cancelled:
                return
            task._mark_fired()
            runner = self.loop.create_task(self._run(task, callback), name=name or None)
            self._running.add(runner)
            runner.add_done_callback(self._running.discard)

        task._timer = self.loop.call_later(max(0.0, delay), _fire)
        return task

    @staticmethod
    async def _run(task: ScheduledTask, callback: TimerCallback) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            _LOGGER.exception("Scheduled callback %s failed", task.name or callback)
