import unittest

from ads_ingest.config import IngestSettings, PromptLimits, clamp_limit


class ClampLimitTests(unittest.TestCase):
    def test_positive_numbers_are_floored(self):
        self.assertEqual(clamp_limit(7, 3), 7)
        self.assertEqual(clamp_limit(7.9, 3), 7)
        self.assertEqual(clamp_limit(1.0, 3), 1)

    def test_unusable_values_fall_back(self):
        for value in (0, -4, 0.5, float("nan"), float("inf"), float("-inf"), True, False, "10", None, [5]):
            with self.subTest(value=value):
                self.assertEqual(clamp_limit(value, 3), 3)


class PromptLimitsTests(unittest.TestCase):
    def test_defaults(self):
        limits = PromptLimits()
        self.assertEqual(
            (limits.include_all_threshold, limits.max_rows_per_report, limits.max_waste_rows, limits.max_campaign_rows),
            (25, 20, 12, 15),
        )

    def test_constructor_values_are_clamped(self):
        limits = PromptLimits(max_rows_per_report=-1, max_waste_rows=4.2)
        self.assertEqual(limits.max_rows_per_report, 20)
        self.assertEqual(limits.max_waste_rows, 4)

    def test_from_options_accepts_both_spellings(self):
        limits = PromptLimits.from_options({"max_waste_rows": 2, "maxCampaignRows": 3, "unrelated": 99})
        self.assertEqual(limits.max_waste_rows, 2)
        self.assertEqual(limits.max_campaign_rows, 3)
        self.assertEqual(limits.max_rows_per_report, 20)

    def test_snake_case_wins_when_both_given(self):
        limits = PromptLimits.from_options({"max_rows_per_report": 8, "maxRowsPerReport": 9})
        self.assertEqual(limits.max_rows_per_report, 8)

    def test_none_and_instances(self):
        self.assertEqual(PromptLimits.from_options(None), PromptLimits())
        prebuilt = PromptLimits(include_all_threshold=5)
        self.assertIs(PromptLimits.from_options(prebuilt), prebuilt)


class IngestSettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = IngestSettings()
        self.assertTrue(settings.use_threads)
        self.assertEqual(settings.max_workers, 4)
        self.assertEqual(settings.header_scan_rows, 5)


if __name__ == "__main__":
    unittest.main()
