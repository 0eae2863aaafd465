from __future__ import annotations

import asyncio
import logging
from typing import Callable


logger = logging.getLogger(__name__)


class PeriodicCleanup:
    """Runs a blocking job on a fixed interval from the event loop.

    The job runs in a worker thread. Exceptions are logged and the loop keeps
    going; only ``stop()`` ends it.
    """

    def __init__(self, *, job: Callable[[], object], interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._job = job
        self._interval_seconds = interval_seconds
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run())
        logger.info("cleanup_scheduler: started interval_seconds=%s", self._interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("cleanup_scheduler: stopped")

    async def run(self) -> None:
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
            except asyncio.TimeoutError:
                pass
            else:
                break
            await self.run_once()

    async def run_once(self) -> None:
        try:
            await asyncio.to_thread(self._job)
        except Exception:
            logger.exception("cleanup_scheduler: job failed")
