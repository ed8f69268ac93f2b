"""
Periodic roster refresh.

The refresh runs once when the app starts and then every ``interval``
seconds until shutdown. Sheets calls block, so each refresh runs in the
threadpool while the loop itself stays on the event loop.
"""

import asyncio
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from roster.util.cache import RosterCache

logger = logging.getLogger(__name__)


class RefreshScheduler:
    def __init__(self, cache: RosterCache, interval: float = 10.0):
        self.cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        await run_in_threadpool(self.cache.refresh)

    async def _periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception as exc:
                logger.error("Roster refresh failed: %s", exc)

    async def start(self) -> asyncio.Task:
        """Refresh immediately, then schedule the periodic loop."""
        logger.info("Starting roster refresh (interval=%ss)", self.interval)
        await self.run_once()
        if not self.running:
            self._task = asyncio.create_task(self._periodic())
        return self._task

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
