import os
import tempfile
import unittest
from pathlib import Path

from grocery_tracker.db import PriceDatabase
from grocery_tracker.refresh import PriceRefresher
from grocery_tracker.retailers.browser_pool import BrowserPool

LIVE_URL = os.environ.get(
    "GROCERY_TRACKER_LIVE_COLES_URL",
    "https://www.coles.com.au/product/coles-full-cream-milk-2l-8150288",
)


@unittest.skipUnless(os.environ.get("GROCERY_TRACKER_LIVE_TESTS") == "1", "live retailer test")
class TestColesLiveViaRefresher(unittest.IsolatedAsyncioTestCase):
    async def asyncTearDown(self) -> None:
        await BrowserPool.shutdown()

    async def test_coles_live_refresh_stores_price_and_history(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db = PriceDatabase(db_path=Path(td) / "prices.db")
            link_id = db.add_link(LIVE_URL, "coles", grocery_item_id="milk")

            outcome = await PriceRefresher(db).refresh_all()
            self.assertEqual(outcome.failed, 0)
            self.assertEqual([link.id for link in outcome.updated], [link_id])

            link = db.get_link(link_id)
            self.assertIsNotNone(link.regular_price)
            self.assertGreater(link.regular_price, 0)
            self.assertEqual(len(db.get_price_history(link_id)), 1)
