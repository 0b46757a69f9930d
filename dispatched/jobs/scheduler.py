"""Readiness scanner: periodic discovery of due jobs.

Every tick asks the store for QUEUED jobs whose ``scheduled_for + delay`` has
passed and dispatches them one at a time, in insertion order. Ticks run on a
fixed wall-clock cadence; a slow tick delays the next one instead of
overlapping it.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from dispatched.config import SCANNER_TICK_SECONDS
from dispatched.jobs.dispatcher import Dispatcher
from dispatched.jobs.job import Job
from dispatched.jobs.store import JobStore
from dispatched.utils import get_logger
from dispatched.utils.time import utc_now

logger = get_logger(__name__)


class ReadinessScanner:
    def __init__(
        self,
        store: JobStore,
        dispatcher: Dispatcher,
        *,
        scheduled_delay: float,
        period: float = SCANNER_TICK_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.scheduled_delay = scheduled_delay
        self.period = period
        self.clock = clock
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            self.stop()
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="readiness-scanner")
        logger.info("Readiness scanner started", period=self.period, scheduled_delay=self.scheduled_delay)

    def stop(self) -> None:
        """Cancel the timer. A dispatch already in flight keeps running."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Readiness scanner stopped")

    async def tick(self, now: Optional[datetime] = None) -> list[Job]:
        """Dispatch every ready job sequentially. Returns the jobs handed to the dispatcher."""
        now = now or self.clock()
        ready = self.store.list_ready(now, self.scheduled_delay)
        if ready:
            logger.info("Found ready jobs", count=len(ready))
        for job in ready:
            # Shielded so stopping the scanner mid-send does not abort the attempt.
            await asyncio.shield(self.dispatcher.spawn(job))
        return ready

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_deadline = loop.time() + self.period
        while True:
            await asyncio.sleep(max(0.0, next_deadline - loop.time()))
            self.ticks += 1
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Scanner tick failed", error=str(e), exc_info=True)
            next_deadline += self.period
            if next_deadline < loop.time():
                # Overran one or more periods; fire the next tick as soon as possible.
                next_deadline = loop.time()


__all__ = ["ReadinessScanner"]
