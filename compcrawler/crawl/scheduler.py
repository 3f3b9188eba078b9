"""A minimal daily wall-clock task runner.

``PeriodicTask`` only knows how to wait for the next ``HH:MM`` and await a
coroutine factory; it has no knowledge of what the job does.  The on-demand
trigger paths call the very same factory, and nothing prevents the two from
overlapping.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]


def seconds_until_next(hour: int, minute: int, now: Optional[datetime] = None) -> float:
    """Seconds from *now* until the next local ``hour:minute`` (always > 0)."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class PeriodicTask:
    """Run *job* every day at ``hour:minute`` local time.

    Exceptions raised by the job are logged and the loop keeps going.
    """

    def __init__(self, name: str, job: JobFactory, hour: int, minute: int = 0) -> None:
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Invalid schedule time {hour:02d}:{minute:02d}")
        self.name = name
        self.job = job
        self.hour = hour
        self.minute = minute
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        try:
            await self.job()
        except Exception:
            logger.exception("[SCHEDULE] %s failed", self.name)

    async def run_forever(self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> None:
        while True:
            delay = seconds_until_next(self.hour, self.minute)
            logger.info("[SCHEDULE] %s next run in %.0fs", self.name, delay)
            await sleep(delay)
            logger.info("[SCHEDULE] %s started", self.name)
            await self.run_once()

    def start(self) -> asyncio.Task:
        """Schedule :meth:`run_forever` on the running loop."""
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(
                self.run_forever(), name=f"periodic:{self.name}"
            )
        return self._task  # type: ignore[return-value]

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
