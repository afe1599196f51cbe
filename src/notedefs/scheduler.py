"""Cancellable deferred calls, used to debounce index reloads."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Protocol

log = logging.getLogger(__name__)


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, fn: Callable[[], Any]) -> ScheduledTask: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop's ``call_later``.

    Coroutine functions are run as tasks once their delay elapses.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay: float, fn: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._get_loop()

        def fire() -> None:
            result = fn()
            if inspect.isawaitable(result):
                task = loop.create_task(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

        return loop.call_later(delay, fire)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("Scheduled reload failed", exc_info=task.exception())


class Debouncer:
    """Trailing-edge debounce: the last call within the window wins."""

    def __init__(self, scheduler: Scheduler, delay: float):
        self._scheduler = scheduler
        self.delay = delay
        self._pending: ScheduledTask | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, fn: Callable[[], Any]) -> None:
        self.cancel()

        def fire() -> Any:
            self._pending = None
            return fn()

        self._pending = self._scheduler.schedule(self.delay, fire)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
