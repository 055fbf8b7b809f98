"""
Periodic task engine: run an async callback on a fixed interval inside the event loop.

The task is an explicit asyncio.Task with a cancellation handle owned by whoever
constructs it (the HealthRegistry for probe cycles). Exceptions from a single
tick are logged and isolated; the loop never crashes. stop() cancels and awaits
the task so shutdown is clean and tests stay deterministic.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from backend_passport.passport_logging import get_logger

logger = get_logger(__name__)

MIN_INTERVAL_SEC = 0.01


class PeriodicTask:
    """Fixed-period scheduler for one coroutine function."""

    def __init__(
        self,
        name: str,
        interval_sec: float,
        callback: Callable[[], Awaitable[object]],
        *,
        run_immediately: bool = False,
    ) -> None:
        self.name = name
        self.interval_sec = max(MIN_INTERVAL_SEC, float(interval_sec))
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.errors = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        logger.info("periodic_task_started", task=self.name, interval_sec=self.interval_sec)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("periodic_task_stopped", task=self.name, runs=self.runs, errors=self.errors)

    async def _tick(self) -> None:
        self.runs += 1
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.errors += 1
            logger.exception("periodic_task_tick_failed", task=self.name, run=self.runs, error=str(e))

    async def _loop(self) -> None:
        # Deadlines are measured from tick start; a slow tick shortens the next sleep
        next_at = time.monotonic() + (0.0 if self._run_immediately else self.interval_sec)
        while True:
            delay = next_at - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            next_at = time.monotonic() + self.interval_sec
            await self._tick()
