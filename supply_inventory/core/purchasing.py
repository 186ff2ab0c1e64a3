# supply_inventory/core/purchasing.py
import math
from typing import Dict

from ..exceptions import CalculationError

PRIORITY_HIGH = 'high'
PRIORITY_MEDIUM = 'medium'
PRIORITY_LOW = 'low'

HIGH_SHARE_OF_STOCK = 0.5
MEDIUM_SHARE_OF_STOCK = 0.2

DEFAULT_HORIZON_DAYS = 21
NO_CONSUMPTION_DAYS_REMAINING = 999

# Guards ceil() against float noise such as 3.0000000000000004
_ROUNDING_EPSILON = 1e-9

def calculate_purchase_recommendation(
    current_qty: float,
    min_qty: float,
    max_qty: float,
    daily_average: float,
    horizon_days: int = DEFAULT_HORIZON_DAYS
) -> Dict:
    """Calculate how much of a supply to buy for the coming horizon.

    The target level is the minimum stock plus what is expected to be used
    over the horizon, capped at the maximum stock when one is configured.

    Args:
        current_qty: Current stock level
        min_qty: Minimum stock level
        max_qty: Maximum stock level (0 = no cap)
        daily_average: Average daily consumption
        horizon_days: Number of days the purchase should cover

    Returns:
        Dictionary with recommended_buy, target_qty, projected_use and rationale
    """
    if horizon_days is None or horizon_days < 0:
        raise CalculationError(f"Horizon must be a non-negative number of days, got {horizon_days}")

    current_qty = float(current_qty or 0)
    min_qty = float(min_qty or 0)
    max_qty = float(max_qty or 0)
    daily_average = max(0.0, float(daily_average or 0))

    projected_use = daily_average * horizon_days
    target_qty = min_qty + projected_use

    if max_qty > 0 and max_qty >= min_qty:
        target_qty = max(min_qty, min(target_qty, max_qty))

    shortfall = target_qty - current_qty
    recommended_buy = int(math.ceil(shortfall - _ROUNDING_EPSILON)) if shortfall > 0 else 0

    if recommended_buy <= 0:
        rationale = (
            f"Stock of {current_qty:g} covers projected use of {projected_use:g} "
            f"over {horizon_days} days"
        )
    elif current_qty < min_qty:
        rationale = (
            f"Below minimum ({current_qty:g} < {min_qty:g}); "
            f"buy {recommended_buy} to reach {target_qty:g}"
        )
    else:
        rationale = (
            f"Projected use of {projected_use:g} over {horizon_days} days "
            f"leaves stock short of {target_qty:g}; buy {recommended_buy}"
        )

    return {
        'recommended_buy': recommended_buy,
        'target_qty': target_qty,
        'projected_use': projected_use,
        'rationale': rationale
    }

def determine_priority(recommended_buy: float, current_qty: float, min_qty: float) -> str:
    """Classify a recommendation into high, medium or low priority."""
    if recommended_buy <= 0:
        return PRIORITY_LOW

    if current_qty < min_qty:
        return PRIORITY_HIGH

    if recommended_buy > current_qty * HIGH_SHARE_OF_STOCK:
        return PRIORITY_HIGH

    if recommended_buy > current_qty * MEDIUM_SHARE_OF_STOCK:
        return PRIORITY_MEDIUM

    return PRIORITY_LOW

def calculate_days_remaining(
    current_qty: float,
    daily_average: float,
    sentinel: int = NO_CONSUMPTION_DAYS_REMAINING
) -> int:
    """Whole days of stock left at the current consumption rate.

    Returns the sentinel when there is no measurable consumption.
    """
    if not daily_average or daily_average <= 0:
        return sentinel
    return int(math.floor(current_qty / daily_average))
