"""
Refresh Scheduler
=================

Two independent asyncio timers drive the dashboard:

- baseline: refreshes every panel at the configured refresh interval
- follow:   appends new lines for one worker at a shorter interval

Each tick runs as its own task. Stopping a timer only prevents future
ticks; a fetch that is already in flight completes and must re-check its
context before rendering.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class PeriodicTask:
    """A restartable repeating timer owning its own cancellation."""

    def __init__(self, interval: float, callback: TickCallback, name: str = "periodic"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self.ticks = 0
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(
            self._loop(), name=f"{self.name}-timer"
        )

    def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

    def restart(self) -> None:
        self.stop()
        self.start()

    def fire(self) -> asyncio.Task:
        """Run the callback once, now, without touching the timer phase."""
        task = asyncio.get_running_loop().create_task(self._run_once(), name=f"{self.name}-tick")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            self.fire()

    async def _run_once(self) -> None:
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s tick failed", self.name)

    async def close(self) -> None:
        self.stop()
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class RefreshScheduler:
    """Owns the baseline and follow timers of one dashboard session."""

    def __init__(
        self,
        baseline: TickCallback,
        follow: TickCallback,
        baseline_interval: float,
        follow_interval: float,
    ):
        self.baseline = PeriodicTask(baseline_interval, baseline, name="baseline")
        self.follow = PeriodicTask(follow_interval, follow, name="follow")

    def start(self) -> None:
        self.baseline.start()

    def trigger_now(self) -> asyncio.Task:
        return self.baseline.fire()

    @property
    def following(self) -> bool:
        return self.follow.running

    def start_follow(self) -> None:
        self.follow.start()

    def stop_follow(self) -> None:
        self.follow.stop()

    def restart_follow(self) -> None:
        self.follow.restart()

    async def close(self) -> None:
        await self.follow.close()
        await self.baseline.close()
