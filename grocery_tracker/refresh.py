"""Batch driver that refreshes prices for tracked product links."""

from __future__ import annotations

import logging
from datetime import datetime
from time import perf_counter
from typing import Callable, Iterable

from .db import PriceDatabase
from .fetcher import BrowserPageFetcher, PageFetcher
from .history import should_record_history
from .models import ProductLink, RefreshOutcome
from .scheduler import is_refresh_due
from .scraper import extract_price_data

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class PriceRefresher:
    """Refreshes links one at a time; a failing link never stops the batch."""

    def __init__(
        self,
        db: PriceDatabase,
        fetcher: PageFetcher | None = None,
        clock: Callable[[], datetime] = _local_now,
    ):
        """
        Initialize the refresher.

        Args:
            db: Store for links and price history
            fetcher: Page fetcher (defaults to the shared headless browser)
            clock: Source of "now", used for due checks and timestamps
        """
        self.db = db
        self.fetcher = fetcher or BrowserPageFetcher()
        self.clock = clock

    async def refresh_all(self, force: bool = False) -> RefreshOutcome:
        """Refresh every tracked link that is due."""
        return await self._run(self.db.get_links(), force=force)

    async def refresh_grocery_item(self, grocery_item_id: str, force: bool = False) -> RefreshOutcome:
        """Refresh the links of one grocery item."""
        links = self.db.get_links(grocery_item_id=grocery_item_id)
        if not links:
            raise LookupError(f"No product links for grocery item {grocery_item_id}")
        return await self._run(links, force=force)

    async def _run(self, links: list[ProductLink], force: bool) -> RefreshOutcome:
        started_at = self.clock()
        run_id = self.db.create_refresh_run(started_at.isoformat())
        start_time = perf_counter()

        try:
            outcome = await self.refresh_links(links, force=force)
        except Exception as e:
            self.db.complete_refresh_run(
                run_id,
                status="failed",
                completed_at=self.clock().isoformat(),
                error_message=str(e),
                duration_seconds=perf_counter() - start_time,
            )
            raise

        duration = perf_counter() - start_time
        self.db.complete_refresh_run(
            run_id,
            status="completed",
            completed_at=self.clock().isoformat(),
            links_updated=len(outcome.updated),
            links_failed=outcome.failed,
            duration_seconds=duration,
        )
        logger.info(
            f"Refresh run {run_id} completed: {len(outcome.updated)} updated, "
            f"{outcome.skipped} skipped, {outcome.missing} without price, "
            f"{outcome.failed} failed in {duration:.2f}s"
        )
        return outcome

    async def refresh_links(self, links: Iterable[ProductLink], force: bool = False) -> RefreshOutcome:
        """Refresh the given links sequentially and collect the updated ones."""
        outcome = RefreshOutcome()

        for link in links:
            try:
                if not force and not is_refresh_due(link.last_refreshed, link.has_no_price, now=self.clock()):
                    logger.debug(f"Skipping {link.store.value} link {link.id} - refreshed since this week's anchor")
                    outcome.skipped += 1
                    continue

                updated, recorded = await self.refresh_link(link)
                if updated is None:
                    outcome.missing += 1
                    continue

                outcome.updated.append(updated)
                if recorded:
                    outcome.history_rows += 1

            except Exception as e:
                outcome.failed += 1
                logger.error(f"Error refreshing price for link {link.id}: {e}")

        return outcome

    async def refresh_link(self, link: ProductLink) -> tuple[ProductLink | None, bool]:
        """Scrape one link and persist the result.

        Returns the updated link (None when no price was found, in which case
        nothing is stored) and whether a history row was written. Retrieval
        errors propagate.
        """
        logger.info(f"Scraping {link.store.value} price from {link.url}")
        raw = await self.fetcher.fetch(link.url, link.store)
        price = extract_price_data(raw, link.store)

        if price.is_empty:
            logger.warning(f"No price data scraped for {link.url}")
            return None, False

        record = should_record_history(link.price_data, price)
        updated = self.db.record_refresh(link.id, price, refreshed_at=self.clock(), add_history=record)

        logger.info(
            f"Updated link {link.id} with prices: regularPrice={price.regular_price}, "
            f"discountPrice={price.discount_price}"
        )
        return updated, record
