"""Interval scheduling for the push job, aligned to wall-clock boundaries."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable


logger = logging.getLogger(__name__)


class IntervalScheduler:
    """Triggers ``job`` at every ``interval_seconds`` boundary of the wall clock.

    A tick that arrives while the previous invocation is still running is
    skipped, never queued: the job assumes it is the only writer of subscriber
    state.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        interval_seconds: int = 60,
        name: str = "job",
    ) -> None:
        self._job = job
        self._interval = interval_seconds
        self._name = name
        self._task: asyncio.Task | None = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> bool:
        """Start one invocation unless one is in progress. Returns True if started."""
        if self.running:
            logger.warning("%s is still running; skipping this tick", self._name)
            return False
        self._task = asyncio.create_task(self._invoke())
        return True

    async def run_forever(self) -> None:
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=_seconds_until_next_tick(self._interval))
            except asyncio.TimeoutError:
                self.trigger()
        if self._task is not None:
            await self._task

    def stop(self) -> None:
        self._stopped.set()

    async def _invoke(self) -> None:
        try:
            await self._job()
        except Exception:
            logger.exception("%s failed", self._name)


def _seconds_until_next_tick(interval: int, now: float | None = None) -> float:
    current = time.time() if now is None else now
    return interval - (current % interval)
