"""Periodic refresh of the dashboard."""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .sync import Dashboard

logger = logging.getLogger(__name__)

# Upper bound on concurrent cycles when overlap is allowed
MAX_OVERLAPPING_CYCLES = 100


class DashboardPoller:
    """Runs a refresh cycle on a fixed interval."""

    def __init__(self, dashboard: Dashboard, interval: int = 60, allow_overlap: bool = False,
                 on_cycle: Optional[Callable[[], Awaitable[None]]] = None):
        """Initialize poller.

        Args:
            dashboard: Dashboard whose refresh_data runs every interval
            interval: Seconds between cycle starts
            allow_overlap: Start a new cycle even when the previous one is still running
            on_cycle: Coroutine called after every finished cycle (e.g. redraw the view)
        """
        self.dashboard = dashboard
        self.interval = interval
        self.allow_overlap = allow_overlap
        self.on_cycle = on_cycle
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._stopped: Optional[asyncio.Event] = None

    async def run_cycle(self):
        """Refresh once and notify the listener."""
        await self.dashboard.refresh_data()
        if self.on_cycle is not None:
            try:
                await self.on_cycle()
            except Exception as e:
                logger.error(f"View update failed: {e}", exc_info=True)

    def start(self):
        """Schedule cycles, the first one immediately. Needs a running event loop."""
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(seconds=self.interval),
            id='refresh',
            name='Dashboard Refresh',
            next_run_time=datetime.now(),
            max_instances=MAX_OVERLAPPING_CYCLES if self.allow_overlap else 1,
            coalesce=not self.allow_overlap,
        )
        self.scheduler.start()
        logger.info(
            f"Refreshing every {self.interval}s "
            f"({'overlapping' if self.allow_overlap else 'single-flight'} cycles)"
        )

    async def run(self):
        """Run until stop() is called."""
        self._stopped = asyncio.Event()
        self.start()
        try:
            await self._stopped.wait()
        finally:
            self.shutdown()

    def stop(self):
        """Stop the poller."""
        if self._stopped is not None:
            self._stopped.set()

    def shutdown(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info("Poller stopped")
