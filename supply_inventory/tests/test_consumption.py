"""
Unit tests for consumption averages and trend classification.
"""
import unittest
from datetime import date

import numpy as np

from supply_inventory.core.consumption import (
    TREND_DECREASING, TREND_INCREASING, TREND_STABLE,
    build_daily_series, build_trend_points, calculate_daily_average,
    classify_trend, cumulative_daily_average
)


class TestDailyAverage(unittest.TestCase):

    def test_average(self):
        self.assertAlmostEqual(calculate_daily_average(3, 30), 0.1)

    def test_zero_days(self):
        self.assertEqual(calculate_daily_average(12, 0), 0.0)


class TestTrend(unittest.TestCase):
    """Test cases for trend classification."""

    def test_increasing(self):
        trend, change = classify_trend(np.arange(1, 8, dtype=float))

        self.assertEqual(trend, TREND_INCREASING)
        self.assertAlmostEqual(change, 150.0)

    def test_decreasing(self):
        trend, _ = classify_trend(np.arange(7, 0, -1, dtype=float))

        self.assertEqual(trend, TREND_DECREASING)

    def test_flat(self):
        self.assertEqual(classify_trend(np.full(10, 2.0)), (TREND_STABLE, 0.0))

    def test_no_usage(self):
        self.assertEqual(classify_trend(np.zeros(10)), (TREND_STABLE, 0.0))

    def test_single_day(self):
        self.assertEqual(classify_trend(np.array([4.0])), (TREND_STABLE, 0.0))


class TestSeries(unittest.TestCase):

    def test_zero_filled_series(self):
        days = [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)]
        series = build_daily_series({date(2024, 3, 2): 4.0}, days)

        self.assertEqual(series.tolist(), [0.0, 4.0, 0.0])

    def test_cumulative_average(self):
        averages = cumulative_daily_average(np.array([2.0, 4.0, 0.0]))

        self.assertEqual(averages.tolist(), [2.0, 3.0, 2.0])

    def test_trend_points(self):
        days = [date(2024, 3, 1), date(2024, 3, 2)]
        points = build_trend_points(days, np.array([1.0, 3.0]))

        self.assertEqual(points[1], {'date': '2024-03-02', 'used': 3.0, 'daily_average': 2.0})


if __name__ == '__main__':
    unittest.main()
