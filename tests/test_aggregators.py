import unittest

from ads_ingest.aggregators import (
    TIER1_AGGREGATORS,
    ColumnIndex,
    aggregate_amazon_daily,
    aggregate_google_daily,
    aggregate_meta_daily,
)
from ads_ingest.models import AdsDailyRecord, AmazonDailyRecord

GOOGLE_HEADERS = ["Day", "Campaign", "Ad ID", "Cost", "Impressions", "Clicks", "Conversions", "All conv. value"]
META_HEADERS = [
    "Date",
    "Ad name",
    "Amount spent (USD)",
    "Impressions",
    "Link clicks",
    "Purchases (all)",
    "Purchases value (all)",
]
AMAZON_HEADERS = [
    "date", "Spend", "Revenue", "Orders", "Conversions", "ROAS", "ACOS", "Impressions", "Clicks",
    "CTR", "Avg CPC", "Conv Rate", "Total ACOS (TACOS)", "Total Units Ordered", "Total Revenue",
]


class ColumnIndexTests(unittest.TestCase):
    def test_lookup_order_exact_then_case_then_prefix(self):
        columns = ColumnIndex(["cost", "Amount spent (USD)", " Clicks ", "Cost"])
        self.assertEqual(columns.find("Cost"), 3)
        self.assertEqual(columns.find("COST"), 0)
        self.assertEqual(columns.find("Clicks"), 2)
        self.assertEqual(columns.find("Amount spent"), 1)
        self.assertIsNone(columns.find("Revenue"))

    def test_prefix_only_reaches_unit_qualified_headers(self):
        columns = ColumnIndex(["Day", "Conversions value", "Clicks (all)", "Cost per click"])
        self.assertIsNone(columns.find("Conversions"))
        self.assertIsNone(columns.find("Cost"))
        self.assertEqual(columns.find("Clicks"), 2)

    def test_missing_conversions_column_does_not_borrow_value_column(self):
        headers = ["Day", "Campaign", "Cost", "Impressions", "Clicks", "Conversions value"]
        records = aggregate_google_daily([["2026-01-05", "A", "10", "100", "5", "80"]], headers).records
        self.assertEqual(records["2026-01-05"].conversions, 0)
        self.assertEqual(records["2026-01-05"].cost_per_conversion, 0)

    def test_getter_tolerates_short_rows_and_missing_columns(self):
        columns = ColumnIndex(["Day", "Cost"])
        self.assertIsNone(columns.getter("Cost")(["2026-01-05"]))
        self.assertIsNone(columns.getter("Clicks")(["2026-01-05", "3"]))


class GoogleDailyTests(unittest.TestCase):
    def test_rates_are_derived_after_summing(self):
        rows = [
            ["2026-01-05", "Brand", "1", "10", "100", "5", "1", "40"],
            ["2026-01-05", "Generic", "2", "20", "100", "0", "0", "0"],
        ]
        aggregate = aggregate_google_daily(rows, GOOGLE_HEADERS)
        record = aggregate.records["2026-01-05"]

        self.assertIsInstance(record, AdsDailyRecord)
        self.assertEqual(record.platform, "google")
        self.assertEqual(record.spend, 30)
        self.assertEqual(record.clicks, 5)
        self.assertEqual(record.cpc, 6)
        self.assertEqual(record.ctr, 2.5)
        self.assertEqual(record.cpm, 150)
        self.assertEqual(record.cost_per_conversion, 30)
        self.assertAlmostEqual(record.roas, 40 / 30)

    def test_zero_denominators_give_zero_rates(self):
        rows = [["2026-01-06", "Brand", "1", "0", "0", "0", "0", "0"]]
        record = aggregate_google_daily(rows, GOOGLE_HEADERS).records["2026-01-06"]
        self.assertEqual((record.cpc, record.ctr, record.cpm, record.cost_per_conversion, record.roas), (0, 0, 0, 0, 0))

    def test_rows_without_a_date_are_skipped(self):
        rows = [
            ["", "Brand", "1", "99", "10", "1", "0", "0"],
            ["Total", "", "", "99", "10", "1", "0", "0"],
            ["Jan 7, 2026", "Brand", "1", "$1,000.00", "2,000", "40", "0", "0"],
        ]
        aggregate = aggregate_google_daily(rows, GOOGLE_HEADERS)
        self.assertEqual(list(aggregate.records), ["2026-01-07"])
        self.assertEqual(aggregate.records["2026-01-07"].spend, 1000)
        self.assertEqual(aggregate.meta["days"], 1)
        self.assertEqual(aggregate.meta["total_spend"], 1000)

    def test_meta_summarises_dates_and_spend(self):
        rows = [
            ["2026-01-06", "A", "1", "5", "10", "1", "0", "0"],
            ["2026-01-05", "A", "1", "7", "10", "1", "0", "0"],
        ]
        meta = aggregate_google_daily(rows, GOOGLE_HEADERS).meta
        self.assertEqual(meta["type"], "google_daily")
        self.assertEqual(meta["platform"], "google")
        self.assertEqual(meta["tier"], 1)
        self.assertEqual(meta["date_range"], ["2026-01-05", "2026-01-06"])
        self.assertEqual(meta["total_spend"], 12)


class MetaDailyTests(unittest.TestCase):
    def test_amount_spent_with_unit_suffix_is_found(self):
        rows = [
            ["2026-02-01", "Ad A", "12.00", "4000", "30", "2", "90.00"],
            ["2026-02-01", "Ad B", "8.00", "1000", "10", "0", "0"],
            ["2026-02-02", "Ad A", "5.00", "500", "0", "0", "0"],
        ]
        aggregate = aggregate_meta_daily(rows, META_HEADERS)
        first = aggregate.records["2026-02-01"]

        self.assertEqual(first.platform, "meta")
        self.assertEqual(first.spend, 20)
        self.assertEqual(first.impressions, 5000)
        self.assertEqual(first.clicks, 40)
        self.assertEqual(first.conversions, 2)
        self.assertEqual(first.conversion_value, 90)
        self.assertEqual(first.cpc, 0.5)
        self.assertEqual(first.ctr, 0.8)
        self.assertEqual(first.cpm, 4)
        self.assertEqual(first.roas, 4.5)
        self.assertEqual(aggregate.records["2026-02-02"].cpc, 0)
        self.assertEqual(aggregate.meta["type"], "meta_daily")
        self.assertEqual(aggregate.meta["total_spend"], 25)


class AmazonDailyTests(unittest.TestCase):
    def test_columns_copy_straight_across(self):
        row = [
            "2026-01-05", "$120.50", "480", "12", "11", "3.98", "25.1%", "15000", "300",
            "2%", "0.40", "3.7%", "9.5%", "40", "1,260.00",
        ]
        aggregate = aggregate_amazon_daily([row], AMAZON_HEADERS)
        record = aggregate.records["2026-01-05"]

        self.assertIsInstance(record, AmazonDailyRecord)
        self.assertEqual(record.platform, "amazon")
        self.assertEqual(record.spend, 120.5)
        self.assertEqual(record.revenue, 480)
        self.assertEqual(record.acos, 25.1)
        self.assertEqual(record.cpc, 0.4)
        self.assertEqual(record.tacos, 9.5)
        self.assertEqual(record.total_units, 40)
        self.assertEqual(record.total_revenue, 1260)
        self.assertEqual(aggregate.meta["total_revenue"], 480)

    def test_later_row_for_same_date_replaces_earlier(self):
        rows = [
            ["2026-01-05", "100", "300"],
            ["2026-01-05", "150", "450"],
        ]
        aggregate = aggregate_amazon_daily(rows, ["date", "Spend", "Revenue"])
        record = aggregate.records["2026-01-05"]
        self.assertEqual(record.spend, 150)
        self.assertEqual(record.revenue, 450)
        self.assertEqual(record.clicks, 0)
        self.assertEqual(aggregate.meta["days"], 1)
        self.assertEqual(aggregate.meta["total_spend"], 150)

    def test_spreadsheet_serial_dates(self):
        aggregate = aggregate_amazon_daily([[45888, 10, 20]], ["date", "Spend", "Revenue"])
        self.assertEqual(list(aggregate.records), ["2025-08-19"])


class RegistryTests(unittest.TestCase):
    def test_every_tier1_signature_has_an_aggregator(self):
        from ads_ingest.signatures import DEFAULT_REGISTRY

        tier1_ids = {signature.id for signature in DEFAULT_REGISTRY.for_tier(1)}
        self.assertEqual(tier1_ids, set(TIER1_AGGREGATORS))


if __name__ == "__main__":
    unittest.main()
