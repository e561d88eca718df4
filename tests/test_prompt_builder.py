import unittest

from ads_ingest.config import PromptLimits
from ads_ingest.prompt_builder import TASK_SECTION, build_context, bundle_section, format_cell

UPLOADED = "2026-02-01T09:00:00Z"


def search_term_bundle(count=30):
    records = [
        {"Search Term": f"term-{i}", "Spend": i, "Sales": 0 if i % 3 == 0 else 10}
        for i in range(1, count + 1)
    ]
    return {
        "records": records,
        "headers": ["Search Term", "Spend", "Sales"],
        "meta": {"label": "SP Search Terms", "uploaded_at": UPLOADED},
        "uploaded_at": UPLOADED,
    }


def landing_page_bundle(count=30):
    return {
        "records": [{"Landing page": f"/page-{i}", "Sessions": i} for i in range(count)],
        "headers": ["Landing page", "Sessions"],
        "meta": {"label": "Shopify Landing Pages"},
        "uploaded_at": UPLOADED,
    }


class BundleSectionTests(unittest.TestCase):
    def test_large_bundle_is_capped_to_top_rows_by_spend(self):
        lines = bundle_section("amazon", "sp_search_terms", search_term_bundle(), PromptLimits())
        text = "\n".join(lines)

        self.assertEqual(lines[0], "\n## AMAZON: SP Search Terms (30 rows, uploaded 2026-02-01)")
        self.assertEqual(lines[1], "Headers: Search Term | Spend | Sales")
        self.assertIn("\nTop 20 by spend:", lines)
        top_index = lines.index("\nTop 20 by spend:")
        self.assertEqual(lines[top_index + 1], "term-30 | 30 | 0")
        self.assertEqual(lines[top_index + 20], "term-11 | 11 | 10")
        self.assertNotIn("term-10 | 10 | 10", text)
        self.assertEqual(lines[-1], "\n... and 10 more rows")

    def test_wasteful_rows_are_counted_and_capped(self):
        lines = bundle_section("amazon", "sp_search_terms", search_term_bundle(), PromptLimits(max_waste_rows=2))
        self.assertIn("\nWasteful (spend > $5, zero sales): 9 entries", lines)
        start = lines.index("\nWasteful (spend > $5, zero sales): 9 entries")
        self.assertEqual(lines[start + 1 : start + 3], ["term-30 | 30 | 0", "term-27 | 27 | 0"])
        self.assertEqual(lines[start + 3], "\n... and 10 more rows")

    def test_small_bundle_emits_every_row(self):
        lines = bundle_section("amazon", "sp_search_terms", search_term_bundle(3), PromptLimits())
        self.assertEqual(lines[2:], ["term-1 | 1 | 10", "term-2 | 2 | 10", "term-3 | 3 | 0"])

    def test_bundle_without_spend_column_lists_first_rows(self):
        lines = bundle_section("shopify", "shopify_landing_pages", landing_page_bundle(), PromptLimits())
        self.assertIn("\nFirst 20 records:", lines)
        self.assertEqual(lines[lines.index("\nFirst 20 records:") + 1], "/page-0 | 0")
        self.assertEqual(lines[-1], "\n... and 10 more rows")
        self.assertFalse(any(line.startswith("\nWasteful") for line in lines))

    def test_equal_spend_keeps_upload_order(self):
        bundle = search_term_bundle(30)
        for record in bundle["records"]:
            record["Spend"] = 7
        lines = bundle_section("amazon", "sp_search_terms", bundle, PromptLimits())
        start = lines.index("\nTop 20 by spend:")
        self.assertEqual(lines[start + 1], "term-1 | 7 | 10")


class LimitOverrideTests(unittest.TestCase):
    def test_invalid_overrides_fall_back_to_defaults(self):
        for bad in (0, -1, float("nan"), float("inf"), True, "abc", None):
            with self.subTest(value=bad):
                text = build_context({"amazon": {"sp_search_terms": search_term_bundle()}}, {}, options={"max_rows_per_report": bad})
                self.assertIn("Top 20 by spend:", text)

    def test_camel_case_overrides_are_accepted_and_floored(self):
        text = build_context(
            {"amazon": {"sp_search_terms": search_term_bundle()}},
            {},
            options={"maxRowsPerReport": 5.9, "includeAllThreshold": 10},
        )
        self.assertIn("Top 5 by spend:", text)
        self.assertIn("... and 25 more rows", text)

    def test_raising_the_threshold_includes_everything(self):
        text = build_context({"amazon": {"sp_search_terms": search_term_bundle()}}, {}, options={"include_all_threshold": 50})
        self.assertNotIn("Top 20", text)
        self.assertIn("term-10 | 10 | 10", text)

    def test_format_cell(self):
        self.assertEqual(format_cell(None), "")
        self.assertEqual(format_cell(12.0), "12")
        self.assertEqual(format_cell(0.625), "0.625")
        self.assertEqual(format_cell(float("nan")), "")
        self.assertEqual(format_cell("$1,200"), "$1,200")


class BuildContextTests(unittest.TestCase):
    def test_overview_rolls_up_ledger(self):
        ledger = {
            "2026-01-01": {"amazon": {"ad_spend": 100, "revenue": 400}, "shopify": {"google_spend": 30, "revenue": 120}},
            "2026-01-02": {
                "amazon": {},
                "amazon_ads_metrics": {"spend": 50},
                "shopify": {"meta_spend": 20, "revenue": 80},
            },
        }
        text = build_context({}, ledger)
        self.assertIn("## LAST 30 DAYS OVERVIEW (from daily sales data)", text)
        self.assertIn("- Amazon: $150 ad spend → $400 revenue (TACOS: 37.5%)", text)
        self.assertIn("- Google: $30 ad spend", text)
        self.assertIn("- Meta: $20 ad spend", text)
        self.assertIn("- Shopify Revenue: $200", text)
        self.assertIn("- Total Ad Spend: $200", text)
        self.assertIn("- Total Revenue: $600", text)
        self.assertIn("- Combined ROAS: 3.00x", text)

    def test_overview_uses_only_most_recent_days(self):
        ledger = {f"2026-01-{day:02d}": {"shopify": {"google_spend": 1}} for day in range(1, 32)}
        ledger.update({f"2025-12-{day:02d}": {"shopify": {"google_spend": 1}} for day in range(1, 6)})
        text = build_context(None, ledger)
        self.assertIn("- Google: $30 ad spend", text)
        self.assertIn("(TACOS: N/A%)", text)

    def test_empty_inputs_give_preamble_and_task_only(self):
        text = build_context({}, {})
        self.assertTrue(text.startswith("You are an expert Amazon & DTC advertising strategist"))
        self.assertIn("of the brand's advertising", text)
        self.assertTrue(text.endswith(TASK_SECTION))
        self.assertNotIn("OVERVIEW", text)
        self.assertNotIn("AMAZON CAMPAIGNS", text)

    def test_store_name_appears_in_preamble(self):
        self.assertIn("of Acme's advertising", build_context({}, {}, store_name="Acme"))

    def test_campaign_list_is_capped(self):
        campaigns = [
            {"name": f"C{i}", "state": "ENABLED" if i < 5 else "PAUSED", "budget": 50, "spend": 12.5, "roas": 3}
            for i in range(20)
        ]
        text = build_context({}, {}, {"campaigns": campaigns})
        self.assertIn("## AMAZON CAMPAIGNS\n20 total campaigns (5 enabled)", text)
        self.assertIn("- C0: ENABLED | Budget: $50 | Spend: $12.50 | ROAS: 3.00x", text)
        self.assertIn("- C14: PAUSED", text)
        self.assertNotIn("- C15:", text)

    def test_store_metadata_and_malformed_entries_are_skipped(self):
        store = {
            "last_updated": UPLOADED,
            "report_count": 2,
            "amazon": {"sp_search_terms": search_term_bundle(2), "broken": {"records": "nope"}},
            "shopify": {"shopify_landing_pages": landing_page_bundle(2)},
        }
        text = build_context(store, {})
        self.assertIn("## AMAZON: SP Search Terms (2 rows, uploaded 2026-02-01)", text)
        self.assertIn("## SHOPIFY: Shopify Landing Pages (2 rows, uploaded 2026-02-01)", text)
        self.assertNotIn("LAST_UPDATED", text)
        self.assertNotIn("broken", text)

    def test_prebuilt_limits_are_used_as_is(self):
        text = build_context({"amazon": {"sp_search_terms": search_term_bundle()}}, {}, options=PromptLimits(max_rows_per_report=3))
        self.assertIn("Top 3 by spend:", text)


if __name__ == "__main__":
    unittest.main()
