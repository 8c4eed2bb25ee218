import sqlite3
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from grocery_tracker.db import PriceDatabase
from grocery_tracker.models import PriceData, RawPage, Store
from grocery_tracker.refresh import PriceRefresher
from grocery_tracker.scheduler import RefreshScheduler
from grocery_tracker.scraper import scrape_price

NOW = datetime(2026, 10, 18, 12, 0).astimezone()


class FakeFetcher:
    """Serves canned DOM fragments per URL; exceptions are raised on fetch."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.calls: list[str] = []

    async def fetch(self, url: str, store: Store) -> RawPage:
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return RawPage(url=url, html="<html><body></body></html>", dom_candidates=page)


class TestPriceRefresher(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db = PriceDatabase(Path(self._tmp.name) / "prices.db")
        self.coles_id = self.db.add_link("https://coles.test/milk", "coles", grocery_item_id="milk")
        self.woolies_id = self.db.add_link("https://woolworths.test/milk", "woolworths", grocery_item_id="milk")
        self.aldi_id = self.db.add_link("https://aldi.test/bread", "aldi", grocery_item_id="bread")
        self.fetcher = FakeFetcher(
            {
                "https://coles.test/milk": {"current": "$4.00", "was": "$6.00"},
                "https://woolworths.test/milk": RuntimeError("navigation timeout"),
                "https://aldi.test/bread": {"current": "$2.49"},
            }
        )
        self.refresher = PriceRefresher(self.db, fetcher=self.fetcher, clock=lambda: NOW)

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_failing_link_does_not_stop_the_batch(self):
        outcome = await self.refresher.refresh_all()

        self.assertEqual(sorted(link.id for link in outcome.updated), [self.coles_id, self.aldi_id])
        self.assertEqual(outcome.failed, 1)
        self.assertEqual(outcome.history_rows, 2)

        coles = self.db.get_link(self.coles_id)
        self.assertEqual(coles.price_data, PriceData(6.0, 4.0))
        self.assertEqual(coles.last_refreshed, NOW)

        woolies = self.db.get_link(self.woolies_id)
        self.assertTrue(woolies.has_no_price)
        self.assertIsNone(woolies.last_refreshed)

    async def test_fresh_links_are_skipped_until_forced(self):
        await self.refresher.refresh_all()
        self.fetcher.calls.clear()

        outcome = await self.refresher.refresh_all()
        self.assertEqual(outcome.skipped, 2)
        # Links without a price are retried on every pass.
        self.assertEqual(self.fetcher.calls, ["https://woolworths.test/milk"])

        outcome = await self.refresher.refresh_all(force=True)
        self.assertEqual(outcome.skipped, 0)
        self.assertEqual(len(outcome.updated), 2)

    async def test_link_refreshed_before_the_anchor_is_due(self):
        self.db.record_refresh(self.aldi_id, PriceData(2.49), refreshed_at=datetime(2026, 10, 13, 9).astimezone())
        outcome = await self.refresher.refresh_grocery_item("bread")
        self.assertEqual([link.id for link in outcome.updated], [self.aldi_id])

    async def test_history_only_records_changes(self):
        await self.refresher.refresh_all()
        outcome = await self.refresher.refresh_all(force=True)
        self.assertEqual(outcome.history_rows, 0)
        self.assertEqual(len(self.db.get_price_history(self.coles_id)), 1)

        self.fetcher.pages["https://coles.test/milk"] = {"current": "$5.00"}
        outcome = await self.refresher.refresh_all(force=True)
        self.assertEqual(outcome.history_rows, 1)

        history = self.db.get_price_history(self.coles_id)
        self.assertEqual(len(history), 2)
        self.assertEqual((history[0].regular_price, history[0].discount_price), (5.0, None))
        self.assertEqual((history[1].regular_price, history[1].discount_price), (6.0, 4.0))

    async def test_failed_history_write_keeps_the_old_price(self):
        with sqlite3.connect(self.db.db_path) as conn:
            conn.execute("""
                CREATE TRIGGER reject_history BEFORE INSERT ON price_history
                BEGIN SELECT RAISE(ABORT, 'history unavailable'); END
            """)

        outcome = await self.refresher.refresh_grocery_item("bread")
        self.assertEqual(outcome.failed, 1)
        link = self.db.get_link(self.aldi_id)
        self.assertTrue(link.has_no_price)
        self.assertIsNone(link.last_refreshed)

        with sqlite3.connect(self.db.db_path) as conn:
            conn.execute("DROP TRIGGER reject_history")

        outcome = await self.refresher.refresh_grocery_item("bread")
        self.assertEqual(outcome.history_rows, 1)
        self.assertEqual(len(self.db.get_price_history(self.aldi_id)), 1)

    async def test_page_without_price_leaves_link_untouched(self):
        self.fetcher.pages["https://aldi.test/bread"] = {}
        outcome = await self.refresher.refresh_grocery_item("bread")

        self.assertEqual(outcome.missing, 1)
        self.assertEqual(outcome.updated, [])
        link = self.db.get_link(self.aldi_id)
        self.assertTrue(link.has_no_price)
        self.assertIsNone(link.last_refreshed)
        self.assertEqual(self.db.get_price_history(self.aldi_id), [])

    async def test_unknown_grocery_item(self):
        with self.assertRaises(LookupError):
            await self.refresher.refresh_grocery_item("cheese")

    async def test_refresh_run_is_recorded(self):
        await self.refresher.refresh_all()
        runs = self.db.get_refresh_runs()
        self.assertEqual(len(runs), 1)
        self.assertEqual(runs[0]["status"], "completed")
        self.assertEqual(runs[0]["links_updated"], 2)
        self.assertEqual(runs[0]["links_failed"], 1)

    async def test_scheduler_run_once(self):
        scheduler = RefreshScheduler(self.refresher, check_interval=60)
        self.assertEqual(await scheduler.run_once(), 2)

        status = scheduler.get_status()
        self.assertFalse(status["running"])
        self.assertEqual(status["last_updated"], 2)
        self.assertIsNotNone(status["last_run"])


class TestScrapePrice(unittest.IsolatedAsyncioTestCase):
    async def test_retrieval_error_gives_empty_result(self):
        fetcher = FakeFetcher({"https://coles.test/x": TimeoutError("navigation timeout")})
        result = await scrape_price("https://coles.test/x", "coles", fetcher=fetcher)
        self.assertTrue(result.is_empty)

    async def test_unknown_store_gives_empty_result(self):
        fetcher = FakeFetcher({})
        result = await scrape_price("https://iga.test/x", "iga", fetcher=fetcher)
        self.assertTrue(result.is_empty)
        self.assertEqual(fetcher.calls, [])

    async def test_scrapes_with_given_fetcher(self):
        fetcher = FakeFetcher({"https://coles.test/x": {"current": "$4.00", "was": "$6.00"}})
        result = await scrape_price("https://coles.test/x", Store.COLES, fetcher=fetcher)
        self.assertEqual(result, PriceData(6.0, 4.0))


class TestPriceDatabase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db = PriceDatabase(Path(self._tmp.name) / "prices.db")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_add_link_rejects_unknown_store(self):
        with self.assertRaises(ValueError):
            self.db.add_link("https://iga.test/x", "iga")

    def test_update_missing_link(self):
        with self.assertRaises(LookupError):
            self.db.record_refresh(99, PriceData(1.0), refreshed_at=NOW)

    def test_delete_link_removes_history(self):
        link_id = self.db.add_link("https://coles.test/x", "coles")
        self.db.record_refresh(link_id, PriceData(1.0), refreshed_at=NOW, add_history=True)
        self.assertTrue(self.db.delete_link(link_id))
        self.assertIsNone(self.db.get_link(link_id))
        self.assertEqual(self.db.get_price_history(link_id), [])
