# supply_inventory/services/catalog_service.py
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supply_inventory.db import raise_if_unavailable
from supply_inventory.exceptions import NotFoundError, ValidationError
from supply_inventory.logging_setup import get_logger
from supply_inventory.models import InventoryRecord, Supply
from supply_inventory.utils.helpers import mask_id
from supply_inventory.utils.validation import require_identifiers, validate_thresholds

logger = get_logger('catalog')

UPDATABLE_SUPPLY_FIELDS = ('name', 'unit', 'sku')


class CatalogService:
    """Service for the tenant supply catalog and stock thresholds."""

    def __init__(self, session: Session):
        """Initialize the catalog service.

        Args:
            session: Database session
        """
        self.session = session

    def _find_supply(self, tenant_id: str, supply_id: int) -> Supply:
        supply = self.session.query(Supply).filter(
            Supply.id == supply_id,
            Supply.tenant_id == tenant_id
        ).first()
        if not supply:
            raise NotFoundError(f"Supply {supply_id} not found")
        return supply

    def get_supply(self, tenant_id: str, supply_id: int) -> Optional[Supply]:
        """Get a supply by ID.

        Returns:
            Supply object or None if not found for the tenant
        """
        try:
            return self._find_supply(tenant_id, supply_id)
        except NotFoundError:
            return None
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching supply {supply_id}: {str(e)}")
            return None

    def get_supplies(self, tenant_id: str, active_only: bool = True) -> List[Supply]:
        """Get the supplies of a tenant ordered by name; empty on store errors."""
        query = self.session.query(Supply).filter(Supply.tenant_id == tenant_id)

        if active_only:
            query = query.filter(Supply.is_active.is_(True))

        try:
            return query.order_by(Supply.name, Supply.id).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching supplies for tenant {mask_id(tenant_id)}: {str(e)}")
            return []

    def create_supply(
        self,
        tenant_id: str,
        name: str,
        unit: str = 'ks',
        sku: Optional[str] = None
    ) -> Dict:
        """Create a new supply.

        Args:
            tenant_id: Tenant ID
            name: Supply name
            unit: Unit of measure
            sku: Optional stock-keeping unit

        Returns:
            Dictionary with success flag, the supply (if created) and error message (if not)
        """
        try:
            require_identifiers(tenant_id=tenant_id, name=name, unit=unit)

            existing = self.session.query(Supply).filter(
                Supply.tenant_id == tenant_id,
                Supply.name.ilike(name.strip()),
                Supply.is_active.is_(True)
            ).first()
            if existing:
                raise ValidationError(f"Supply '{name.strip()}' already exists", code='DUPLICATE_SUPPLY')

            supply = Supply(tenant_id=tenant_id, name=name.strip(), unit=unit.strip(), sku=sku, is_active=True)
            self.session.add(supply)
            self.session.commit()

        except ValidationError as e:
            return {'success': False, 'supply': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error creating supply: {str(e)}")
            return {'success': False, 'supply': None, 'error': f"Failed to create supply: {str(e)}"}

        logger.info(f"Supply created: supply={supply.id} tenant={mask_id(tenant_id)}")
        return {'success': True, 'supply': supply.to_dict(), 'error': None}

    def update_supply(self, tenant_id: str, supply_id: int, updates: Dict[str, Any]) -> Dict:
        """Update a supply.

        Args:
            tenant_id: Tenant ID
            supply_id: Supply ID
            updates: Dictionary with fields to update (name, unit, sku)

        Returns:
            Dictionary with success flag, the updated supply and error message
        """
        try:
            supply = self._find_supply(tenant_id, supply_id)

            for field, value in updates.items():
                if field not in UPDATABLE_SUPPLY_FIELDS:
                    logger.warning(f"Field {field} cannot be updated on Supply")
                    continue
                if field in ('name', 'unit') and (value is None or not str(value).strip()):
                    raise ValidationError(f"{field} cannot be empty", code='INVALID_FIELD')
                setattr(supply, field, value.strip() if isinstance(value, str) else value)

            self.session.commit()

        except (ValidationError, NotFoundError) as e:
            self.session.rollback()
            return {'success': False, 'supply': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error updating supply {supply_id}: {str(e)}")
            return {'success': False, 'supply': None, 'error': f"Failed to update supply: {str(e)}"}

        return {'success': True, 'supply': supply.to_dict(), 'error': None}

    def deactivate_supply(self, tenant_id: str, supply_id: int) -> Dict:
        """Soft-delete a supply; its movements and aliases stay in place."""
        try:
            supply = self._find_supply(tenant_id, supply_id)
            supply.is_active = False
            self.session.commit()

        except NotFoundError as e:
            return {'success': False, 'supply': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error deactivating supply {supply_id}: {str(e)}")
            return {'success': False, 'supply': None, 'error': f"Failed to deactivate supply: {str(e)}"}

        logger.info(f"Supply deactivated: supply={supply_id} tenant={mask_id(tenant_id)}")
        return {'success': True, 'supply': supply.to_dict(), 'error': None}

    def set_thresholds(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        min_qty: float,
        max_qty: float
    ) -> Dict:
        """Set the minimum and maximum stock of a supply at a property.

        A missing inventory record is created with zero stock.

        Returns:
            Dictionary with success flag, the stored thresholds and error message
        """
        try:
            require_identifiers(tenant_id=tenant_id, property_id=property_id, supply_id=supply_id)

            errors = validate_thresholds(min_qty, max_qty)
            if errors:
                raise ValidationError('; '.join(errors.values()), code='INVALID_THRESHOLDS', details=errors)

            self._find_supply(tenant_id, supply_id)

            record = self.session.query(InventoryRecord).filter(
                InventoryRecord.tenant_id == tenant_id,
                InventoryRecord.property_id == property_id,
                InventoryRecord.supply_id == supply_id
            ).populate_existing().first()

            if record is None:
                record = InventoryRecord(
                    tenant_id=tenant_id,
                    property_id=property_id,
                    supply_id=supply_id,
                    current_qty=0.0
                )
                self.session.add(record)

            record.min_qty = float(min_qty or 0)
            record.max_qty = float(max_qty or 0)
            self.session.commit()

        except (ValidationError, NotFoundError) as e:
            return {'success': False, 'thresholds': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error setting thresholds for supply {supply_id}: {str(e)}")
            return {'success': False, 'thresholds': None, 'error': f"Failed to set thresholds: {str(e)}"}

        logger.info(
            f"Thresholds set: property={mask_id(property_id)} supply={supply_id} "
            f"min={record.min_qty} max={record.max_qty} tenant={mask_id(tenant_id)}"
        )
        return {
            'success': True,
            'thresholds': {
                'property_id': property_id,
                'supply_id': supply_id,
                'current_qty': record.current_qty,
                'min_qty': record.min_qty,
                'max_qty': record.max_qty
            },
            'error': None
        }
