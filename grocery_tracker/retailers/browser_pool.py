"""Shared Playwright browser for the page fetcher."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright_stealth import Stealth

from .. import settings

logger = logging.getLogger(__name__)


class BrowserPool:
    """
    Process-wide Chromium instance, launched on first use.

    Each fetch gets its own context (separate cookies, storage) on the shared
    browser. The owning process closes it with ``BrowserPool.shutdown()``.
    """

    _instance: BrowserPool | None = None
    _lock = asyncio.Lock()

    def __init__(self, launch_args: list[str] | None = None):
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launch_args = launch_args if launch_args is not None else list(settings.BROWSER_ARGS)
        self._launch_lock = asyncio.Lock()

    @classmethod
    async def get_instance(cls) -> BrowserPool:
        """Get or create the singleton browser pool instance."""
        if cls._instance is None:
            async with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    async def _ensure_browser(self) -> Browser:
        """Launch Chromium unless a connected browser already exists."""
        async with self._launch_lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._playwright is None:
                self._playwright = await async_playwright().start()

            logger.info("Launching headless Chromium")
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=self._launch_args,
            )
            return self._browser

    @asynccontextmanager
    async def new_page(
        self,
        *,
        user_agent: str | None = None,
        locale: str | None = "en-AU",
        stealth: bool = True,
    ) -> AsyncIterator[Page]:
        """Open a page in a fresh context; the context is closed afterwards."""
        browser = await self._ensure_browser()
        context_kwargs: dict[str, object] = {"user_agent": user_agent or settings.USER_AGENT}
        if locale:
            context_kwargs["locale"] = locale

        context = await browser.new_context(**context_kwargs)
        try:
            page = await context.new_page()
            if stealth:
                await Stealth().apply_stealth_async(page)
            yield page
        finally:
            await context.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @classmethod
    async def shutdown(cls) -> None:
        """Shutdown the singleton instance."""
        if cls._instance is not None:
            await cls._instance.close()
            cls._instance = None


@asynccontextmanager
async def get_page(**kwargs) -> AsyncIterator[Page]:
    """Get a page from the shared pool."""
    pool = await BrowserPool.get_instance()
    async with pool.new_page(**kwargs) as page:
        yield page
