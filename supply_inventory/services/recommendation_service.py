# supply_inventory/services/recommendation_service.py
from typing import Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supply_inventory.config import config
from supply_inventory.core.purchasing import (
    PRIORITY_HIGH, PRIORITY_LOW, PRIORITY_MEDIUM,
    calculate_days_remaining, calculate_purchase_recommendation, determine_priority
)
from supply_inventory.db import raise_if_unavailable
from supply_inventory.logging_setup import get_logger
from supply_inventory.models import InventoryRecord, Property, Supply
from supply_inventory.services.consumption_service import ConsumptionService
from supply_inventory.utils.helpers import as_float, mask_id

logger = get_logger('recommendation')

PRIORITY_ORDER = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 1, PRIORITY_LOW: 2}


class RecommendationService:
    """Service for purchase recommendations, shopping lists and low-stock alerts."""

    def __init__(self, session: Session, consumption_service: Optional[ConsumptionService] = None):
        """Initialize the recommendation service.

        Args:
            session: Database session
            consumption_service: Optional consumption service (created on demand)
        """
        self.session = session
        self.settings = config.inventory_config
        self.consumption = consumption_service or ConsumptionService(session)

    def _daily_averages(self, tenant_id: str, property_id: str) -> Dict[int, float]:
        return self.consumption.get_daily_averages(
            tenant_id, property_id, self.settings['consumption_window_days']
        )

    def get_inventory_snapshot(self, tenant_id: str, property_id: str) -> List[Dict]:
        """Get the inventory of a property with consumption rates.

        Args:
            tenant_id: Tenant ID
            property_id: Property ID

        Returns:
            List of inventory dictionaries ordered by supply name; empty on store errors
        """
        try:
            rows = self.session.query(InventoryRecord, Supply).join(
                Supply, Supply.id == InventoryRecord.supply_id
            ).filter(
                InventoryRecord.tenant_id == tenant_id,
                InventoryRecord.property_id == property_id,
                Supply.tenant_id == tenant_id
            ).order_by(Supply.name, Supply.id).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching inventory for property {mask_id(property_id)}: {str(e)}")
            return []

        daily_averages = self._daily_averages(tenant_id, property_id)
        sentinel = self.settings['no_consumption_days_remaining']

        snapshot = []
        for record, supply in rows:
            current_qty = as_float(record.current_qty)
            daily_average = daily_averages.get(supply.id, 0.0)
            snapshot.append({
                'supply_id': supply.id,
                'supply_name': supply.name,
                'unit': supply.unit,
                'is_active': supply.is_active,
                'current_qty': current_qty,
                'min_qty': as_float(record.min_qty),
                'max_qty': as_float(record.max_qty),
                'daily_average': daily_average,
                'days_remaining': calculate_days_remaining(current_qty, daily_average, sentinel),
                'updated_at': record.updated_at
            })

        return snapshot

    def get_recommendation(
        self,
        tenant_id: str,
        property_id: str,
        horizon_days: Optional[int] = None
    ) -> List[Dict]:
        """Get purchase recommendations for the active supplies of a property.

        Args:
            tenant_id: Tenant ID
            property_id: Property ID
            horizon_days: Days the purchase should cover (default from configuration)

        Returns:
            List of recommendation dictionaries, highest priority first
        """
        if horizon_days is None:
            horizon_days = self.settings['default_horizon_days']
        if horizon_days < 0:
            logger.warning(f"Rejected negative horizon {horizon_days} for property {mask_id(property_id)}")
            return []

        recommendations = []
        for item in self.get_inventory_snapshot(tenant_id, property_id):
            if not item['is_active']:
                continue

            calculation = calculate_purchase_recommendation(
                item['current_qty'],
                item['min_qty'],
                item['max_qty'],
                item['daily_average'],
                horizon_days
            )
            priority = determine_priority(
                calculation['recommended_buy'], item['current_qty'], item['min_qty']
            )

            recommendations.append({
                'supply_id': item['supply_id'],
                'supply_name': item['supply_name'],
                'unit': item['unit'],
                'current_qty': item['current_qty'],
                'min_qty': item['min_qty'],
                'max_qty': item['max_qty'],
                'daily_average': item['daily_average'],
                'horizon_days': horizon_days,
                'target_qty': calculation['target_qty'],
                'recommended_buy': calculation['recommended_buy'],
                'priority': priority,
                'rationale': calculation['rationale']
            })

        recommendations.sort(key=lambda r: (PRIORITY_ORDER[r['priority']], -r['recommended_buy']))

        logger.info(
            f"Recommendations generated: property={mask_id(property_id)} "
            f"supplies={len(recommendations)} "
            f"to_buy={sum(1 for r in recommendations if r['recommended_buy'] > 0)} "
            f"tenant={mask_id(tenant_id)}"
        )

        return recommendations

    def generate_shopping_list(
        self,
        tenant_id: str,
        property_id: str,
        horizon_days: Optional[int] = None
    ) -> Dict:
        """Shopping list with every recommendation for a property and its counts."""
        items = self.get_recommendation(tenant_id, property_id, horizon_days)

        return {
            'items': items,
            'total_items': len(items),
            'high_priority_items': sum(1 for r in items if r['priority'] == PRIORITY_HIGH)
        }

    def get_low_stock_alerts(self, tenant_id: str, property_id: Optional[str] = None) -> List[Dict]:
        """Get supplies at or below their minimum stock.

        A record alerts when it is below its minimum, or sitting exactly at
        a positive minimum.

        Args:
            tenant_id: Tenant ID
            property_id: Optional property filter (all properties when omitted)

        Returns:
            List of alert dictionaries, soonest to run out first; empty on store errors
        """
        try:
            query = self.session.query(InventoryRecord, Supply, Property.name).join(
                Supply, Supply.id == InventoryRecord.supply_id
            ).outerjoin(
                Property,
                and_(
                    Property.id == InventoryRecord.property_id,
                    Property.tenant_id == InventoryRecord.tenant_id
                )
            ).filter(
                InventoryRecord.tenant_id == tenant_id,
                Supply.is_active.is_(True),
                or_(
                    InventoryRecord.current_qty < InventoryRecord.min_qty,
                    and_(
                        InventoryRecord.min_qty > 0,
                        InventoryRecord.current_qty <= InventoryRecord.min_qty
                    )
                )
            )

            if property_id:
                query = query.filter(InventoryRecord.property_id == property_id)

            rows = query.order_by(InventoryRecord.property_id, Supply.name).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching low stock alerts for tenant {mask_id(tenant_id)}: {str(e)}")
            return []

        sentinel = self.settings['no_consumption_days_remaining']
        averages_by_property = {}

        alerts = []
        for record, supply, property_name in rows:
            if record.property_id not in averages_by_property:
                averages_by_property[record.property_id] = self._daily_averages(tenant_id, record.property_id)

            current_qty = as_float(record.current_qty)
            daily_average = averages_by_property[record.property_id].get(supply.id, 0.0)

            alerts.append({
                'property_id': record.property_id,
                'property_name': property_name,
                'supply_id': supply.id,
                'supply_name': supply.name,
                'unit': supply.unit,
                'current_qty': current_qty,
                'min_qty': as_float(record.min_qty),
                'max_qty': as_float(record.max_qty),
                'daily_average': daily_average,
                'days_remaining': calculate_days_remaining(current_qty, daily_average, sentinel)
            })

        alerts.sort(key=lambda a: a['days_remaining'])

        if alerts:
            logger.info(
                f"Low stock alerts: count={len(alerts)} property={mask_id(property_id)} "
                f"tenant={mask_id(tenant_id)}"
            )

        return alerts
