from __future__ import annotations

import asyncio
import logging
from typing import Callable

from arena_watch.service import RunStats, log_run_stats

logger = logging.getLogger(__name__)


class PollScheduler:
    """Runs the poll cycle now, then every ``interval_seconds`` until stopped.

    Cycles never overlap: the next one starts ``interval_seconds`` after the
    previous one started, or as soon as it finishes when it ran longer. The
    blocking cycle runs in a worker thread so the event loop stays free for
    the control endpoint and the ping timer.
    """

    def __init__(self, cycle: Callable[[], RunStats], interval_seconds: float) -> None:
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.cycles_run = 0
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info("Poll scheduler started (interval=%ss)", self.interval_seconds)

        while not self._stop.is_set():
            started = loop.time()
            await self.run_cycle()

            remaining = max(0.0, self.interval_seconds - (loop.time() - started))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass

        logger.info("Poll scheduler stopped after %d cycle(s)", self.cycles_run)

    async def run_cycle(self) -> RunStats | None:
        self.cycles_run += 1
        try:
            stats = await asyncio.to_thread(self.cycle)
        except Exception:  # noqa: BLE001
            logger.exception("Poll cycle %d failed", self.cycles_run)
            return None

        log_run_stats(stats)
        return stats
