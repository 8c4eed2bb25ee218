"""Entry points for extracting a price pair from a product page."""

from __future__ import annotations

import logging

from .fetcher import BrowserPageFetcher, PageFetcher
from .models import PriceData, RawPage, Store
from .retailers import get_retailer

logger = logging.getLogger(__name__)


def extract_price_data(raw: RawPage, store: str | Store) -> PriceData:
    """Extract the price pair from an already fetched page.

    Raises ValueError for unknown stores; a page without a usable price
    yields an empty PriceData.
    """
    retailer = get_retailer(store)
    result = retailer.extract(raw)

    if result.is_empty:
        logger.warning(f"[{retailer.name}] No price found at {raw.url}")
        logger.debug(f"[{retailer.name}] DOM fragments: {raw.dom_candidates}")
    else:
        logger.info(
            f"[{retailer.name}] Scraped price: regular={result.regular_price}, discount={result.discount_price}"
        )
    return result


async def scrape_price(url: str, store: str | Store, fetcher: PageFetcher | None = None) -> PriceData:
    """Fetch and extract a product's prices. Never raises; failures give an empty result."""
    try:
        store = Store.parse(store)
        raw = await (fetcher or BrowserPageFetcher()).fetch(url, store)
        return extract_price_data(raw, store)
    except Exception as e:
        logger.error(f"Error scraping {store} price from {url}: {e}")
        return PriceData()
