# mmbot/scheduler.py
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Protocol, Union

Callback = Callable[[], Union[Awaitable[None], None]]
ErrorHook = Callable[[str, BaseException], None]


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """
    What the controller needs from a clock: run `fn` every `interval_sec`
    seconds until the returned handle is cancelled.
    """

    def every(self, interval_sec: float, fn: Callback, *, name: str) -> ScheduledTask: ...


async def _invoke(fn: Callback) -> None:
    result = fn()
    if inspect.isawaitable(result):
        await result


class PeriodicTask:
    """
    One periodic schedule backed by an asyncio Task.

    Firings are spaced from their scheduled start times, not from the end of
    the previous callback, so a slow callback does not stretch the period.
    A callback that overruns the interval is followed by the next firing
    right away; missed firings are not queued up.

    cancel() is cooperative: the loop stops waiting for the next firing right
    away, but a callback that is already running is allowed to finish.
    """

    def __init__(self, *, name: str, interval_sec: float, fn: Callback, on_error: ErrorHook):
        self.name = name
        self.interval_sec = float(interval_sec)
        self.fn = fn
        self.on_error = on_error

        self._stop_evt = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "PeriodicTask":
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"periodic-{self.name}")
        return self

    def cancel(self) -> None:
        self._stop_evt.set()

    @property
    def cancelled(self) -> bool:
        return self._stop_evt.is_set()

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.interval_sec

        while not self._stop_evt.is_set():
            delay = max(0.0, next_at - loop.time())
            try:
                await asyncio.wait_for(self._stop_evt.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            next_at += self.interval_sec
            try:
                await _invoke(self.fn)
            except Exception as e:
                self.on_error(self.name, e)

            next_at = max(next_at, loop.time())


class AsyncioScheduler:
    """Scheduler running every schedule on the current event loop."""

    def __init__(self, *, log: Optional[logging.Logger] = None, on_error: Optional[ErrorHook] = None):
        self.log = log or logging.getLogger("mmbot")
        self.on_error = on_error or self._log_error
        self.tasks: list[PeriodicTask] = []

    def every(self, interval_sec: float, fn: Callback, *, name: str) -> PeriodicTask:
        task = PeriodicTask(name=name, interval_sec=interval_sec, fn=fn, on_error=self.on_error)
        self.tasks.append(task.start())
        return task

    def cancel_all(self) -> None:
        for task in self.tasks:
            task.cancel()

    async def join(self) -> None:
        """Wait until every cancelled schedule has wound down."""
        for task in list(self.tasks):
            await task.wait()

    def _log_error(self, name: str, exc: BaseException) -> None:
        self.log.warning(f"[SCHED] {name} tick failed: {exc!r}")
