# supply_inventory/core/consumption.py
from datetime import date
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

TREND_INCREASING = 'increasing'
TREND_DECREASING = 'decreasing'
TREND_STABLE = 'stable'

# Fitted change across the window, as a share of mean daily use, that counts as a trend
TREND_THRESHOLD_PERCENT = 10.0

def calculate_daily_average(total_used: float, days: int) -> float:
    """Average daily use over a range; 0 for an empty range."""
    if days <= 0:
        return 0.0
    return float(total_used or 0) / days

def build_daily_series(usage_by_day: Mapping[date, float], days: Sequence[date]) -> np.ndarray:
    """Zero-filled usage series aligned to the given calendar days."""
    return np.array([float(usage_by_day.get(day, 0.0)) for day in days], dtype=float)

def cumulative_daily_average(series: np.ndarray) -> np.ndarray:
    """Running average of daily use up to and including each day."""
    if series.size == 0:
        return series
    return np.cumsum(series) / np.arange(1, series.size + 1)

def classify_trend(series: np.ndarray) -> Tuple[str, float]:
    """Classify a daily usage series by its least-squares slope.

    Args:
        series: Daily usage values in chronological order

    Returns:
        Tuple with trend label and the fitted change over the window as a
        percentage of mean daily use
    """
    if series.size < 2:
        return TREND_STABLE, 0.0

    mean = float(series.mean())
    if mean <= 0:
        return TREND_STABLE, 0.0

    x = np.arange(series.size, dtype=float)
    slope, _ = np.polyfit(x, series, 1)
    change_percent = round(float(slope * (series.size - 1) / mean * 100.0), 2)

    if change_percent > TREND_THRESHOLD_PERCENT:
        return TREND_INCREASING, change_percent
    if change_percent < -TREND_THRESHOLD_PERCENT:
        return TREND_DECREASING, change_percent
    return TREND_STABLE, change_percent

def build_trend_points(days: Sequence[date], series: np.ndarray) -> List[Dict]:
    """Per-day points with usage and running daily average."""
    averages = cumulative_daily_average(series)
    return [
        {'date': day.isoformat(), 'used': float(used), 'daily_average': float(avg)}
        for day, used, avg in zip(days, series, averages)
    ]
