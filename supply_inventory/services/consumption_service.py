# supply_inventory/services/consumption_service.py
from collections import defaultdict
from typing import Dict, List

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supply_inventory.config import config
from supply_inventory.core.consumption import (
    build_daily_series, build_trend_points, calculate_daily_average, classify_trend
)
from supply_inventory.db import raise_if_unavailable
from supply_inventory.logging_setup import get_logger
from supply_inventory.models import InventoryMovement, MovementType, Supply
from supply_inventory.utils.date_utils import (
    DateLike, add_days, date_sequence, days_in_range, range_bounds, trailing_window, utc_today
)
from supply_inventory.utils.helpers import as_float, mask_id

logger = get_logger('consumption')


class ConsumptionService:
    """Service for consumption-rate analytics over ``out`` movements."""

    def __init__(self, session: Session):
        self.session = session

    def get_consumption_data(
        self,
        tenant_id: str,
        property_id: str,
        from_date: DateLike,
        to_date: DateLike
    ) -> List[Dict]:
        """Get per-supply consumption for a property over a date range.

        The range is inclusive; a date-only ``to_date`` covers that whole day.
        Quantities are summed in a single grouped query.

        Args:
            tenant_id: Tenant ID
            property_id: Property ID
            from_date: Range start (date, datetime or ISO string)
            to_date: Range end (date, datetime or ISO string)

        Returns:
            List of dictionaries with supply_id, supply_name, unit,
            total_used, daily_average and last_used; empty on an invalid
            range or store errors
        """
        try:
            start, end = range_bounds(from_date, to_date)
            days = days_in_range(from_date, to_date)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid consumption range for property {mask_id(property_id)}: {str(e)}")
            return []

        total_used = func.sum(InventoryMovement.qty).label('total_used')

        try:
            rows = self.session.query(
                Supply.id.label('supply_id'),
                Supply.name.label('supply_name'),
                Supply.unit,
                total_used,
                func.max(InventoryMovement.created_at).label('last_used')
            ).select_from(
                InventoryMovement
            ).join(
                Supply, Supply.id == InventoryMovement.supply_id
            ).filter(
                InventoryMovement.tenant_id == tenant_id,
                InventoryMovement.property_id == property_id,
                InventoryMovement.movement_type == MovementType.OUT,
                InventoryMovement.created_at >= start,
                InventoryMovement.created_at < end
            ).group_by(
                Supply.id, Supply.name, Supply.unit
            ).order_by(
                desc(total_used), Supply.id
            ).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching consumption data for property {mask_id(property_id)}: {str(e)}")
            return []

        return [
            {
                'supply_id': row.supply_id,
                'supply_name': row.supply_name,
                'unit': row.unit,
                'total_used': as_float(row.total_used),
                'daily_average': calculate_daily_average(as_float(row.total_used), days),
                'last_used': row.last_used
            }
            for row in rows
        ]

    def get_daily_averages(self, tenant_id: str, property_id: str, days: int = None) -> Dict[int, float]:
        """Daily average use per supply over the trailing window ending today."""
        if days is None:
            days = config.inventory_config['consumption_window_days']

        from_date, to_date = trailing_window(days)
        data = self.get_consumption_data(tenant_id, property_id, from_date, to_date)
        return {row['supply_id']: row['daily_average'] for row in data}

    def get_consumption_trends(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        days: int = 30
    ) -> Dict:
        """Get the day-by-day consumption trend of one supply.

        Args:
            tenant_id: Tenant ID
            property_id: Property ID
            supply_id: Supply ID
            days: Number of calendar days ending today

        Returns:
            Dictionary with the daily points, totals and trend classification;
            empty on an invalid window or store errors
        """
        if days is None or days < 1:
            logger.warning(f"Rejected trend window of {days} days for property {mask_id(property_id)}")
            return {}

        end_date = utc_today()
        start_date = add_days(end_date, -(days - 1))
        calendar = date_sequence(start_date, end_date)
        start, end = range_bounds(start_date, end_date)

        try:
            rows = self.session.query(
                InventoryMovement.created_at,
                InventoryMovement.qty
            ).filter(
                InventoryMovement.tenant_id == tenant_id,
                InventoryMovement.property_id == property_id,
                InventoryMovement.supply_id == supply_id,
                InventoryMovement.movement_type == MovementType.OUT,
                InventoryMovement.created_at >= start,
                InventoryMovement.created_at < end
            ).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching consumption trend for supply {mask_id(supply_id)}: {str(e)}")
            return {}

        usage_by_day = defaultdict(float)
        for row in rows:
            usage_by_day[row.created_at.date()] += as_float(row.qty)

        series = build_daily_series(usage_by_day, calendar)
        trend, change_percent = classify_trend(series)
        total = float(series.sum())

        return {
            'supply_id': supply_id,
            'from_date': start_date.isoformat(),
            'to_date': end_date.isoformat(),
            'days': days,
            'total_used': total,
            'daily_average': calculate_daily_average(total, days),
            'trend': trend,
            'change_percent': change_percent,
            'points': build_trend_points(calendar, series)
        }
