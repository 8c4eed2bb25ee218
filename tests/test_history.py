import unittest

from grocery_tracker.history import should_record_history
from grocery_tracker.models import PriceData


class TestShouldRecordHistory(unittest.TestCase):
    def test_first_observation_is_recorded(self):
        self.assertTrue(should_record_history(None, PriceData(5.0)))

    def test_unchanged_price_is_skipped(self):
        self.assertFalse(should_record_history(PriceData(5.0), PriceData(5.0)))
        self.assertFalse(should_record_history(PriceData(6.0, 4.0), PriceData(6.0, 4.0)))

    def test_any_field_change_is_recorded(self):
        self.assertTrue(should_record_history(PriceData(5.0), PriceData(5.0, 4.0)))
        self.assertTrue(should_record_history(PriceData(5.0, 4.0), PriceData(5.0)))
        self.assertTrue(should_record_history(PriceData(5.0), PriceData(5.5)))

    def test_missing_previous_regular_price_is_recorded(self):
        self.assertTrue(should_record_history(PriceData(), PriceData(5.0)))
