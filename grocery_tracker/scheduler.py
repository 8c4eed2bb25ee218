"""Weekly refresh cadence and the background refresh loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING

from . import settings

if TYPE_CHECKING:
    from .refresh import PriceRefresher

logger = logging.getLogger(__name__)


def _as_local(value: datetime) -> datetime:
    # Naive timestamps are taken as local wall-clock time.
    return value.astimezone()


def last_anchor(now: datetime | None = None, weekday: int | None = None) -> datetime:
    """Most recent occurrence of the anchor weekday at local midnight.

    When ``now`` falls on the anchor weekday the anchor is that same day.
    """
    weekday = settings.ANCHOR_WEEKDAY if weekday is None else weekday
    now = _as_local(now or datetime.now())
    days_back = (now.weekday() - weekday) % 7
    anchor_date = now.date() - timedelta(days=days_back)
    # Offset comes from the anchor day, which may differ from today's across DST.
    return datetime.combine(anchor_date, time.min).astimezone()


def is_refresh_due(
    last_refreshed: datetime | None,
    missing_price: bool = False,
    now: datetime | None = None,
    weekday: int | None = None,
) -> bool:
    """Decide whether a tracked link should be scraped again.

    A link is due when it was never refreshed, when it was last refreshed
    before this week's anchor, or when it has no stored price at all.
    """
    if missing_price or last_refreshed is None:
        return True
    return _as_local(last_refreshed) < last_anchor(now, weekday)


class RefreshScheduler:
    """Runs refresh batches as a background task."""

    def __init__(self, refresher: PriceRefresher, check_interval: int = 3600):
        """
        Initialize the scheduler.

        Args:
            refresher: Batch driver used for each run
            check_interval: Seconds between refresh passes (default: 3600)
        """
        self.refresher = refresher
        self.check_interval = check_interval
        self._task: asyncio.Task | None = None
        self._running = False
        self._last_run: datetime | None = None
        self._last_updated = 0

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self._running

    def start(self):
        """Start the scheduler background task."""
        if self._running:
            logger.warning("Scheduler is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Scheduler started")

    def stop(self):
        """Stop the scheduler background task."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info("Scheduler stopped")

    async def _run_loop(self):
        """Main scheduler loop - due-ness is recomputed on every pass."""
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Scheduler error: {e}")

            await asyncio.sleep(self.check_interval)

    async def run_once(self) -> int:
        """Refresh every due link once and return how many were updated."""
        outcome = await self.refresher.refresh_all()
        self._last_run = datetime.now().astimezone()
        self._last_updated = len(outcome.updated)
        return self._last_updated

    def get_status(self) -> dict:
        """Get current scheduler status."""
        return {
            "running": self._running,
            "check_interval": self.check_interval,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_updated": self._last_updated,
            "current_anchor": last_anchor().isoformat(),
        }
