"""Formatting and classification tests."""
import unittest

from core.formatting import (
    BandCutoffs,
    HeatmapBand,
    achievement_rate,
    classify_badge,
    classify_heatmap_band,
    format_currency,
    format_millions,
    format_percentage,
    kpi_change,
    round_half_up,
)


class TestFormatCurrency(unittest.TestCase):

    def test_yen_grouping_without_decimals(self):
        self.assertEqual(format_currency(85000000), "¥85,000,000")
        self.assertEqual(format_currency(0), "¥0")
        self.assertEqual(format_currency(999), "¥999")

    def test_rounds_half_up(self):
        self.assertEqual(format_currency(1234.5), "¥1,235")
        self.assertEqual(format_currency(1234.4), "¥1,234")

    def test_negative_amount(self):
        self.assertEqual(format_currency(-1000), "-¥1,000")

    def test_repeated_calls_are_identical(self):
        outputs = {format_currency(105000000) for _ in range(5)}
        self.assertEqual(outputs, {"¥105,000,000"})


class TestFormatPercentage(unittest.TestCase):

    def test_one_decimal(self):
        self.assertEqual(format_percentage(106.3), "106.3%")
        self.assertEqual(format_percentage(100), "100.0%")
        self.assertEqual(format_percentage(81.84), "81.8%")

    def test_repeated_calls_are_identical(self):
        self.assertEqual(len({format_percentage(96.5) for _ in range(5)}), 1)


class TestFormatMillions(unittest.TestCase):

    def test_axis_and_tooltip_formats(self):
        self.assertEqual(format_millions(85000000), "85M")
        self.assertEqual(format_millions(85000000, 1, "M円"), "85.0M円")


class TestClassifyBadge(unittest.TestCase):

    def test_threshold_is_inclusive(self):
        self.assertTrue(classify_badge(100, 100, False).positive)
        self.assertFalse(classify_badge(99.9, 100, False).positive)

    def test_reverse_colors(self):
        self.assertTrue(classify_badge(99.9, 100, True).positive)
        self.assertFalse(classify_badge(100, 100, True).positive)

    def test_defaults(self):
        badge = classify_badge(106.3)
        self.assertTrue(badge.positive)
        self.assertEqual(badge.label, "106.3%")
        self.assertEqual(badge.to_dict(), {"value": 106.3, "positive": True, "label": "106.3%"})


class TestClassifyHeatmapBand(unittest.TestCase):

    def test_boundaries_higher_is_better(self):
        cases = [
            (120, HeatmapBand.EXCELLENT),
            (119.9, HeatmapBand.GOOD),
            (105, HeatmapBand.GOOD),
            (104.9, HeatmapBand.FAIR),
            (95, HeatmapBand.FAIR),
            (94.9, HeatmapBand.CAUTION),
            (80, HeatmapBand.CAUTION),
            (79.9, HeatmapBand.POOR),
            (0, HeatmapBand.POOR),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(classify_heatmap_band(value, False), expected)

    def test_boundaries_lower_is_better(self):
        cases = [
            (0, HeatmapBand.EXCELLENT),
            (80, HeatmapBand.EXCELLENT),
            (80.1, HeatmapBand.GOOD),
            (95, HeatmapBand.GOOD),
            (95.1, HeatmapBand.FAIR),
            (105, HeatmapBand.FAIR),
            (105.1, HeatmapBand.CAUTION),
            (120, HeatmapBand.CAUTION),
            (120.1, HeatmapBand.POOR),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(classify_heatmap_band(value, True), expected)

    def test_monotonic_over_range(self):
        values = [i / 10 for i in range(0, 2001)]
        ranks = [classify_heatmap_band(v).rank for v in values]
        # Favorability never improves as the value decreases.
        self.assertEqual(ranks, sorted(ranks, reverse=True))
        reversed_ranks = [classify_heatmap_band(v, True).rank for v in values]
        self.assertEqual(reversed_ranks, sorted(reversed_ranks))
        self.assertEqual(set(ranks), {0, 1, 2, 3, 4})
        self.assertEqual(set(reversed_ranks), {0, 1, 2, 3, 4})

    def test_band_rank_order(self):
        self.assertEqual([b.rank for b in HeatmapBand], [0, 1, 2, 3, 4])
        self.assertEqual(HeatmapBand.EXCELLENT.value, "excellent")

    def test_custom_cutoffs(self):
        cutoffs = BandCutoffs(110, 100, 90, 70)
        self.assertEqual(classify_heatmap_band(110, cutoffs=cutoffs), HeatmapBand.EXCELLENT)
        self.assertEqual(classify_heatmap_band(90, True, cutoffs), HeatmapBand.EXCELLENT)


class TestKpiChange(unittest.TestCase):

    def test_increase(self):
        change = kpi_change(5.2)
        self.assertEqual(change.direction, "up")
        self.assertTrue(change.positive)
        self.assertEqual(change.label, "5.2%")

    def test_decrease_shows_magnitude(self):
        change = kpi_change(-3)
        self.assertEqual(change.direction, "down")
        self.assertFalse(change.positive)
        self.assertEqual(change.label, "3%")

    def test_zero_counts_as_down(self):
        self.assertEqual(kpi_change(0).direction, "down")

    def test_percentage_point_unit(self):
        change = kpi_change(-4.7, "pt")
        self.assertEqual(change.direction, "down")
        self.assertEqual(change.label, "4.7pt")
        self.assertEqual(kpi_change(2, "pt").label, "2pt")


class TestAchievementRate(unittest.TestCase):

    def test_one_decimal_half_up(self):
        self.assertEqual(achievement_rate(85000000, 80000000), 106.3)
        self.assertEqual(achievement_rate(18000000, 22000000), 81.8)
        self.assertEqual(round_half_up(2.25, 1), 2.3)

    def test_zero_budget(self):
        self.assertIsNone(achievement_rate(100, 0))


if __name__ == "__main__":
    unittest.main()
