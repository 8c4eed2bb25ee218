"""Page fetchers: turn a product URL into a RawPage for extraction.

Fetchers raise on retrieval failures (navigation errors, timeouts, HTTP
errors); deciding what to do about them is the caller's job.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from playwright.async_api import Page

from . import settings
from .models import RawPage, Store
from .retailers import get_retailer
from .retailers.base import RetailerProfile
from .retailers.browser_pool import get_page
from .retailers.tiers import accept_dom_text, dom_was_text

logger = logging.getLogger(__name__)

# Cap per selector so sweeping "[class*=price]" on a category-heavy page stays cheap.
MAX_ELEMENTS_PER_SELECTOR = 50


class PageFetcher(Protocol):
    async def fetch(self, url: str, store: Store) -> RawPage: ...


class BrowserPageFetcher:
    """Render the page in the shared Chromium and evaluate the retailer's DOM queries."""

    def __init__(
        self,
        *,
        timeout_ms: int | None = None,
        settle_ms: int | None = None,
        user_agent: str | None = None,
    ):
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.NAVIGATION_TIMEOUT_MS
        self.settle_ms = settle_ms if settle_ms is not None else settings.SETTLE_DELAY_MS
        self.user_agent = user_agent

    async def fetch(self, url: str, store: Store) -> RawPage:
        store = Store.parse(store)
        profile = get_retailer(store).profile

        async with get_page(user_agent=self.user_agent) as page:
            logger.info(f"[{store.value}] Loading {url}...")
            await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            # Prices are filled in by client-side rendering after network idle.
            await page.wait_for_timeout(self.settle_ms)

            dom_candidates: dict[str, str] = {}
            try:
                dom_candidates = await evaluate_dom_candidates(page, profile)
            except Exception as e:
                logger.error(f"[{store.value}] Error extracting prices from page: {e}")

            html = await page.content()

        return RawPage(url=url, html=html, dom_candidates=dom_candidates or None)


async def _first_accepted_text(
    page: Page,
    selectors: tuple[str, ...],
    profile: RetailerProfile,
    *,
    was: bool = False,
) -> str | None:
    for selector in selectors:
        try:
            handles = await page.query_selector_all(selector)
        except Exception:
            # Selector not supported by this engine.
            continue
        for handle in handles[:MAX_ELEMENTS_PER_SELECTOR]:
            try:
                text = await handle.inner_text()
            except Exception:
                continue
            if accepted := accept_dom_text(text, profile, was=was):
                return accepted
    return None


async def evaluate_dom_candidates(page: Page, profile: RetailerProfile) -> dict[str, str]:
    """Query the rendered DOM for current and was price fragments."""
    result: dict[str, str] = {}

    if current := await _first_accepted_text(page, profile.dom_current_selectors, profile):
        result["current"] = current

    was = await _first_accepted_text(page, profile.dom_was_selectors, profile, was=True)
    if not was and profile.dom_was_selectors:
        scope = await page.query_selector(profile.container_selector) if profile.container_selector else None
        scope = scope or await page.query_selector("body")
        if scope is not None:
            was = dom_was_text(await scope.inner_text(), profile)
    if was:
        result["was"] = was

    return result


class StaticPageFetcher:
    """Plain HTTP fetch without JavaScript; no DOM fragments are produced."""

    def __init__(self, *, timeout: float = 30.0, user_agent: str | None = None):
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent or settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-AU,en;q=0.8",
        }

    async def fetch(self, url: str, store: Store) -> RawPage:
        store = Store.parse(store)
        async with httpx.AsyncClient(
            follow_redirects=True,
            headers=self.headers,
            timeout=httpx.Timeout(self.timeout),
        ) as client:
            logger.info(f"[{store.value}] Loading {url} (static)...")
            resp = await client.get(url)
            resp.raise_for_status()
            return RawPage(url=url, html=resp.text)
