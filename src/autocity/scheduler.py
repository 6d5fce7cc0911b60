"""Periodic job scheduling with a deterministic manual clock and an asyncio backend."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

JobCallback = Callable[[], "Awaitable[Any] | Any"]


class Scheduler(Protocol):
    """Registers named callbacks to fire every ``interval_seconds``."""

    def every(self, name: str, interval_seconds: float, callback: JobCallback) -> None:
        """Register or replace a periodic job."""

    def cancel(self, name: str) -> None:
        """Remove a job; unknown names are ignored."""


@dataclass(slots=True)
class _ManualJob:
    name: str
    interval_seconds: float
    callback: JobCallback
    next_due: float
    order: int


class ManualScheduler:
    """Virtual-time scheduler advanced explicitly.

    Due jobs fire in due-time order, ties in registration order, and their
    coroutines are awaited inline, so a run is fully reproducible.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._now = 0.0
        self._jobs: dict[str, _ManualJob] = {}
        self._registered = 0
        self._logger = logger or logging.getLogger("autocity.scheduler")

    @property
    def now(self) -> float:
        return self._now

    def every(self, name: str, interval_seconds: float, callback: JobCallback) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._registered += 1
        self._jobs[name] = _ManualJob(
            name=name,
            interval_seconds=interval_seconds,
            callback=callback,
            next_due=self._now + interval_seconds,
            order=self._registered,
        )

    def cancel(self, name: str) -> None:
        self._jobs.pop(name, None)

    def jobs(self) -> list[str]:
        return list(self._jobs)

    async def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every job that falls due; returns the fire count."""
        target = self._now + seconds
        fired = 0
        while True:
            due = [job for job in self._jobs.values() if job.next_due <= target]
            if not due:
                break
            job = min(due, key=lambda item: (item.next_due, item.order))
            self._now = job.next_due
            job.next_due += job.interval_seconds
            result = job.callback()
            if inspect.isawaitable(result):
                await result
            fired += 1
        self._now = target
        return fired


class AsyncioScheduler:
    """Runs each job as a task on the running event loop.

    Coroutine callbacks are spawned rather than awaited, so a slow job never
    delays the next firing of another job.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._spawned: set[asyncio.Task[Any]] = set()
        self._logger = logger or logging.getLogger("autocity.scheduler")

    def every(self, name: str, interval_seconds: float, callback: JobCallback) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cancel(name)
        self._tasks[name] = asyncio.create_task(self._loop(name, interval_seconds, callback), name=f"job-{name}")
        self._logger.info("job_scheduled", extra={"job": name, "interval_seconds": interval_seconds})

    def cancel(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is not None:
            task.cancel()

    async def stop(self) -> None:
        """Cancel every job and any callbacks still running."""
        tasks = [*self._tasks.values(), *self._spawned]
        self._tasks.clear()
        self._spawned.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._logger.info("scheduler_stopped")

    async def _loop(self, name: str, interval_seconds: float, callback: JobCallback) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                result = callback()
            except Exception:  # noqa: BLE001 - one failing firing must not kill the timer.
                self._logger.exception("job_failed", extra={"job": name})
                continue
            if inspect.isawaitable(result):
                spawned = asyncio.ensure_future(result)
                self._spawned.add(spawned)
                spawned.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task[Any]) -> None:
        self._spawned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error("job_callback_failed", exc_info=task.exception())
