import unittest

from grocery_tracker.utils import extract_price, format_price


class TestExtractPrice(unittest.TestCase):
    def test_currency_and_thousands_separators_are_stripped(self):
        self.assertEqual(extract_price("$12.99"), 12.99)
        self.assertEqual(extract_price("12.99"), 12.99)
        self.assertEqual(extract_price("$1,234.50"), 1234.50)
        self.assertEqual(extract_price("A$ 3.00"), 3.0)

    def test_text_without_a_number_is_rejected(self):
        self.assertIsNone(extract_price(""))
        self.assertIsNone(extract_price("abc"))
        self.assertIsNone(extract_price("$"))
        self.assertIsNone(extract_price(None))

    def test_first_number_wins(self):
        self.assertEqual(extract_price("was $6.00"), 6.0)
        self.assertEqual(extract_price("$0.72/0.18 kg"), 0.72)
        self.assertEqual(extract_price("Price: $3.99 per 1 kg"), 3.99)

    def test_leading_decimal_point_is_kept(self):
        self.assertEqual(extract_price("$.99"), 0.99)
        self.assertEqual(extract_price("only .5 left"), 0.5)
        self.assertEqual(extract_price("$1.99"), 1.99)

    def test_numbers_are_passed_through_when_finite(self):
        self.assertEqual(extract_price(3.5), 3.5)
        self.assertEqual(extract_price(4), 4.0)
        self.assertIsNone(extract_price(float("nan")))
        self.assertIsNone(extract_price(True))

    def test_format_price_avoids_exponents(self):
        self.assertEqual(format_price(3.5), "3.5")
        self.assertEqual(format_price(10.0), "10")
        self.assertEqual(format_price(0.00001), "0.00001")
