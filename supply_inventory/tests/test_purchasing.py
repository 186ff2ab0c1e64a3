"""
Unit tests for purchase recommendation arithmetic and priority tiers.
"""
import unittest

from supply_inventory.core.purchasing import (
    PRIORITY_HIGH, PRIORITY_LOW, PRIORITY_MEDIUM,
    calculate_days_remaining, calculate_purchase_recommendation, determine_priority
)
from supply_inventory.exceptions import CalculationError


class TestCalculatePurchaseRecommendation(unittest.TestCase):
    """Test cases for calculate_purchase_recommendation."""

    def test_below_minimum_without_consumption(self):
        result = calculate_purchase_recommendation(5, 10, 50, 0.0, 21)

        self.assertEqual(result['recommended_buy'], 5)
        self.assertEqual(result['target_qty'], 10)
        self.assertIn('Below minimum', result['rationale'])

    def test_projected_use_added_to_minimum(self):
        result = calculate_purchase_recommendation(5, 10, 50, 1.0, 21)

        self.assertEqual(result['projected_use'], 21)
        self.assertEqual(result['target_qty'], 31)
        self.assertEqual(result['recommended_buy'], 26)

    def test_target_capped_at_maximum(self):
        result = calculate_purchase_recommendation(2, 2, 10, 1.0, 21)

        self.assertEqual(result['target_qty'], 10)
        self.assertEqual(result['recommended_buy'], 8)

    def test_no_cap_without_maximum(self):
        result = calculate_purchase_recommendation(0, 0, 0, 2.0, 10)

        self.assertEqual(result['recommended_buy'], 20)

    def test_enough_stock(self):
        result = calculate_purchase_recommendation(40, 10, 50, 1.0, 21)

        self.assertEqual(result['recommended_buy'], 0)
        self.assertIn('covers', result['rationale'])

    def test_rounds_up_without_float_noise(self):
        # 0.1 * 30 is 3.0000000000000004 in binary floating point
        result = calculate_purchase_recommendation(0, 0, 0, 0.1, 30)

        self.assertEqual(result['recommended_buy'], 3)

    def test_fractional_shortfall_rounds_up(self):
        result = calculate_purchase_recommendation(0, 0, 0, 0.25, 10)

        self.assertEqual(result['recommended_buy'], 3)

    def test_negative_horizon(self):
        with self.assertRaises(CalculationError):
            calculate_purchase_recommendation(5, 10, 50, 1.0, -1)


class TestDeterminePriority(unittest.TestCase):
    """Test cases for determine_priority."""

    def test_below_minimum_is_high_for_any_buy(self):
        for buy in (1, 5, 40):
            with self.subTest(buy=buy):
                self.assertEqual(determine_priority(buy, 5, 10), PRIORITY_HIGH)

    def test_nothing_to_buy_is_low(self):
        self.assertEqual(determine_priority(0, 5, 10), PRIORITY_LOW)

    def test_large_share_of_stock_is_high(self):
        self.assertEqual(determine_priority(60, 100, 10), PRIORITY_HIGH)

    def test_medium_share_of_stock(self):
        self.assertEqual(determine_priority(30, 100, 10), PRIORITY_MEDIUM)

    def test_small_share_of_stock(self):
        self.assertEqual(determine_priority(10, 100, 10), PRIORITY_LOW)


class TestCalculateDaysRemaining(unittest.TestCase):

    def test_whole_days(self):
        self.assertEqual(calculate_days_remaining(7, 2), 3)
        self.assertEqual(calculate_days_remaining(2, 3 / 30), 20)

    def test_no_consumption_sentinel(self):
        self.assertEqual(calculate_days_remaining(5, 0), 999)
        self.assertEqual(calculate_days_remaining(5, 0, sentinel=-1), -1)


if __name__ == '__main__':
    unittest.main()
