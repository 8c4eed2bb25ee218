import unittest
from contextlib import asynccontextmanager
from unittest.mock import patch

from grocery_tracker.fetcher import BrowserPageFetcher, evaluate_dom_candidates
from grocery_tracker.retailers import get_retailer
from grocery_tracker.retailers.coles import PRODUCT_BUY_CONTAINER


class FakeHandle:
    def __init__(self, text: str):
        self.text = text

    async def inner_text(self) -> str:
        return self.text


class FakePage:
    """Minimal stand-in for a Playwright page keyed by selector."""

    def __init__(self, elements: dict[str, list[str]], body: str = "", broken: tuple[str, ...] = ()):
        self.elements = elements
        self.body = body
        self.broken = broken
        self.visited: list[str] = []

    async def query_selector_all(self, selector: str):
        if selector in self.broken:
            raise ValueError(f"Unsupported selector {selector}")
        return [FakeHandle(text) for text in self.elements.get(selector, [])]

    async def query_selector(self, selector: str):
        if selector == "body":
            return FakeHandle(self.body)
        handles = await self.query_selector_all(selector)
        return handles[0] if handles else None

    async def goto(self, url: str, **kwargs):
        self.visited.append(url)

    async def wait_for_timeout(self, timeout: int):
        return None

    async def content(self) -> str:
        return f"<html><body>{self.body}</body></html>"


class TestEvaluateDomCandidates(unittest.IsolatedAsyncioTestCase):
    async def test_coles_current_and_was(self):
        page = FakePage(
            {
                ".price__value": ["Was $6.00", "$4.00"],
                f'{PRODUCT_BUY_CONTAINER} [class*="was"]': ["was $6.00"],
            }
        )
        result = await evaluate_dom_candidates(page, get_retailer("coles").profile)
        self.assertEqual(result, {"current": "$4.00", "was": "was $6.00"})

    async def test_woolworths_was_found_in_body_text(self):
        page = FakePage(
            {'[data-testid="product-price"]': ["$3.00"]},
            body="Full Cream Milk $3.00 was $3.50 $1.50 / 1L",
        )
        result = await evaluate_dom_candidates(page, get_retailer("woolworths").profile)
        self.assertEqual(result, {"current": "$3.00", "was": "was $3.50"})

    async def test_aldi_picks_dollar_amount_from_text(self):
        page = FakePage(
            {
                "h1": ["Bananas"],
                '[class*="price"]': ["$0.72/0.18 kg $3.99 per 1 kg"],
            }
        )
        result = await evaluate_dom_candidates(page, get_retailer("aldi").profile)
        self.assertEqual(result, {"current": "$0.72"})

    async def test_unsupported_selector_is_skipped(self):
        page = FakePage(
            {".price__value": ["$4.00"]},
            broken=(".price__value",),
        )
        profile = get_retailer("coles").profile
        page.elements[f"{PRODUCT_BUY_CONTAINER} .price__value"] = ["$4.10"]
        result = await evaluate_dom_candidates(page, profile)
        self.assertEqual(result, {"current": "$4.10"})


class TestBrowserPageFetcher(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_returns_html_and_fragments(self):
        fake = FakePage({".price__value": ["$4.00"]}, body="<span>was $6.00</span>")

        @asynccontextmanager
        async def fake_get_page(**kwargs):
            yield fake

        with patch("grocery_tracker.fetcher.get_page", fake_get_page):
            raw = await BrowserPageFetcher(settle_ms=0).fetch("https://coles.test/milk", "coles")

        self.assertEqual(fake.visited, ["https://coles.test/milk"])
        self.assertEqual(raw.dom_candidates, {"current": "$4.00", "was": "was $6.00"})
        self.assertIn("was $6.00", raw.html)
