import math
import unittest
from datetime import date, datetime, timezone

import pandas as pd

from ads_ingest.normalizers import to_iso_date, to_number


class ToNumberTests(unittest.TestCase):
    def test_currency_and_percent_strings_are_cleaned(self):
        self.assertEqual(to_number("$1,234.50"), 1234.50)
        self.assertEqual(to_number("12%"), 12)
        self.assertEqual(to_number(" 7 "), 7)
        self.assertEqual(to_number("-3.5"), -3.5)
        self.assertEqual(to_number("1e3"), 1000)

    def test_null_tokens_become_zero(self):
        for value in (None, "", "—", "null", "-", "  "):
            with self.subTest(value=value):
                self.assertEqual(to_number(value), 0)

    def test_garbage_and_non_finite_values_become_zero(self):
        self.assertEqual(to_number("abc"), 0)
        self.assertEqual(to_number("12 units"), 0)
        self.assertEqual(to_number(float("nan")), 0)
        self.assertEqual(to_number(float("inf")), 0)
        self.assertEqual(to_number("Infinity"), 0)

    def test_native_numbers_pass_through(self):
        self.assertEqual(to_number(42), 42.0)
        self.assertEqual(to_number(0.625), 0.625)

    def test_booleans_and_dates_are_not_numbers(self):
        self.assertEqual(to_number(True), 0)
        self.assertEqual(to_number(date(2026, 1, 5)), 0)

    def test_result_is_always_finite(self):
        for value in ("$", "%", ",", "1,2,3", "--5", object()):
            with self.subTest(value=value):
                result = to_number(value)
                self.assertTrue(math.isfinite(result))


class ToIsoDateTests(unittest.TestCase):
    def test_month_name_formats(self):
        self.assertEqual(to_iso_date("Feb 6, 2026"), "2026-02-06")
        self.assertEqual(to_iso_date("January 4, 2026"), "2026-01-04")
        self.assertEqual(to_iso_date("Dec 31 2025"), "2025-12-31")

    def test_iso_prefix_is_kept(self):
        self.assertEqual(to_iso_date("2026-01-01 00:00:00"), "2026-01-01")
        self.assertEqual(to_iso_date("2026-01-01T12:30:00Z"), "2026-01-01")
        self.assertEqual(to_iso_date(" 2026-03-09 "), "2026-03-09")

    def test_spreadsheet_serial_uses_1899_12_30_epoch(self):
        self.assertEqual(to_iso_date(45888), "2025-08-19")
        self.assertEqual(to_iso_date(45658), "2025-01-01")
        self.assertEqual(to_iso_date(45658.75), "2025-01-01")

    def test_serials_beyond_the_calendar_give_none(self):
        for value in (1e12, 3e6, 1e9, -1e12, -700000):
            with self.subTest(value=value):
                self.assertIsNone(to_iso_date(value))
        self.assertEqual(to_iso_date(1), "1899-12-31")

    def test_native_date_objects(self):
        self.assertEqual(to_iso_date(date(2026, 1, 5)), "2026-01-05")
        self.assertEqual(to_iso_date(datetime(2026, 1, 5, 18, 30)), "2026-01-05")
        self.assertEqual(to_iso_date(pd.Timestamp("2026-01-05 08:00")), "2026-01-05")
        self.assertEqual(
            to_iso_date(datetime(2026, 1, 5, 23, 30, tzinfo=timezone.utc)),
            "2026-01-05",
        )

    def test_general_parse_fallback(self):
        self.assertEqual(to_iso_date("01/05/2026"), "2026-01-05")

    def test_unparseable_values_return_none(self):
        for value in (None, "", "   ", 0, "not a date", pd.NaT, False):
            with self.subTest(value=value):
                self.assertIsNone(to_iso_date(value))


if __name__ == "__main__":
    unittest.main()
