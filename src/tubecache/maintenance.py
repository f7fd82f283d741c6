"""Caller-owned periodic cache maintenance."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from pydantic import BaseModel

from tubecache.cache.engine import CacheEngine

logger = logging.getLogger(__name__)


class SweepReport(BaseModel):
    expired: int = 0
    evicted: int = 0


class MaintenanceLoop:
    """Runs ``evict_expired`` then ``evict_by_size`` every ``interval`` seconds.

    The engine never schedules itself; whoever owns the engine starts and
    stops this loop. Sweeps are safe to run alongside foreground reads.
    """

    def __init__(
        self,
        engine: CacheEngine,
        interval_seconds: float = 3600.0,
        max_bytes: int | None = None,
    ) -> None:
        self._engine = engine
        self._interval = interval_seconds
        self._max_bytes = max_bytes
        self._task: asyncio.Task[None] | None = None
        self._sweeps = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def sweeps(self) -> int:
        return self._sweeps

    def run_once(self) -> SweepReport:
        """One synchronous maintenance pass."""
        report = SweepReport(
            expired=self._engine.evict_expired(),
            evicted=self._engine.evict_by_size(self._max_bytes),
        )
        self._sweeps += 1
        logger.debug("Maintenance sweep: %s", report)
        return report

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Cache maintenance sweep failed")
