"""Cooperatively cancellable periodic task.

A timer plus an explicit tick coroutine. ``stop()`` stops scheduling new
ticks and waits for the in-flight tick to finish; it never cancels a
tick midway.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run *tick* every *interval_seconds* until stopped."""

    def __init__(
        self,
        name: str,
        tick: Callable[[], Awaitable[object]],
        *,
        interval_seconds: float,
        run_immediately: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self._tick = tick
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name=f"periodic:{self.name}")
        logger.info("Started %s (every %.1fs)", self.name, self._interval)

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for the current one to finish."""
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        await task
        self._task = None
        logger.info("Stopped %s after %d ticks", self.name, self.tick_count)

    async def wait(self) -> None:
        """Block until the loop exits."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        if self._run_immediately:
            await self._run_tick()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                await self._run_tick()

    async def _run_tick(self) -> None:
        self.tick_count += 1
        try:
            await self._tick()
        except Exception:
            logger.exception("%s tick %d failed", self.name, self.tick_count)
