# supply_inventory/services/reconciliation_service.py
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from supply_inventory.core.ledger import fold_movements
from supply_inventory.db import raise_if_unavailable
from supply_inventory.exceptions import ConcurrentModificationError, ValidationError
from supply_inventory.logging_setup import get_logger, log_exception, logger as log_manager
from supply_inventory.models import InventoryMovement, InventoryRecord
from supply_inventory.utils.helpers import mask_id
from supply_inventory.utils.validation import require_identifiers

logger = get_logger('reconciliation')

# Drift below this is float noise, not a correction
QTY_TOLERANCE = 1e-9


class ReconciliationService:
    """Service for re-deriving cached inventory quantities from the ledger."""

    def __init__(self, session: Session):
        """Initialize the reconciliation service.

        Args:
            session: Database session
        """
        self.session = session

    def _movement_history(self, record: InventoryRecord) -> List:
        return self.session.query(
            InventoryMovement.movement_type,
            InventoryMovement.qty
        ).filter(
            InventoryMovement.tenant_id == record.tenant_id,
            InventoryMovement.property_id == record.property_id,
            InventoryMovement.supply_id == record.supply_id
        ).order_by(
            InventoryMovement.created_at,
            InventoryMovement.id
        ).all()

    def recount(self, tenant_id: str, property_id: str) -> Dict:
        """Recount every inventory record of a property from its movements.

        The whole property is written in a single commit. A record changed
        by another writer after it was read aborts the recount.

        Args:
            tenant_id: Tenant ID
            property_id: Property ID

        Returns:
            Dictionary with success flag, number of records recounted,
            corrections made and error message
        """
        result = {'success': False, 'updated': 0, 'corrections': [], 'error': None}

        try:
            require_identifiers(tenant_id=tenant_id, property_id=property_id)
        except ValidationError as e:
            result['error'] = e.message
            return result

        try:
            records = self.session.query(InventoryRecord).filter(
                InventoryRecord.tenant_id == tenant_id,
                InventoryRecord.property_id == property_id
            ).order_by(InventoryRecord.id).populate_existing().all()

            corrections = []
            for record in records:
                recounted = fold_movements(self._movement_history(record))
                previous = record.current_qty or 0.0

                if abs(recounted - previous) > QTY_TOLERANCE:
                    record.current_qty = recounted
                    corrections.append({
                        'supply_id': record.supply_id,
                        'previous_qty': previous,
                        'recounted_qty': recounted
                    })

            self.session.commit()

        except StaleDataError as e:
            self.session.rollback()
            error = ConcurrentModificationError(
                f"Inventory for property {property_id} changed during recount; retry the recount",
                details={'property_id': property_id}
            )
            logger.warning(f"Recount aborted for property {mask_id(property_id)}: {str(e)}")
            result['error'] = error.message
            return result
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            log_exception('reconciliation', e, f"Error recounting property {mask_id(property_id)}")
            result['error'] = f"Failed to recount inventory: {str(e)}"
            return result

        for correction in corrections:
            logger.warning(
                f"Inventory drift corrected: property={mask_id(property_id)} "
                f"supply={mask_id(correction['supply_id'])} "
                f"cached={correction['previous_qty']} recounted={correction['recounted_qty']}"
            )

        logger.info(
            f"Recount completed: property={mask_id(property_id)} records={len(records)} "
            f"corrections={len(corrections)} tenant={mask_id(tenant_id)}"
        )

        result.update(success=True, updated=len(records), corrections=corrections)
        return result

    def recount_tenant(self, tenant_id: str) -> Dict:
        """Recount every property of a tenant.

        Each property is recounted on its own; one failing property does
        not stop the others.

        Returns:
            Dictionary with overall success flag and per-property results
        """
        log_info = log_manager.operation_start_log('recount_tenant', f"tenant={mask_id(tenant_id)}")

        try:
            require_identifiers(tenant_id=tenant_id)

            rows = self.session.query(InventoryRecord.property_id).filter(
                InventoryRecord.tenant_id == tenant_id
            ).distinct().order_by(InventoryRecord.property_id).all()
        except ValidationError as e:
            log_manager.operation_end_log(log_info, success=False, result_info=e.message)
            return {'success': False, 'properties': {}, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error listing properties for tenant {mask_id(tenant_id)}: {str(e)}")
            log_manager.operation_end_log(log_info, success=False)
            return {'success': False, 'properties': {}, 'error': f"Failed to list properties: {str(e)}"}

        properties = {row.property_id: self.recount(tenant_id, row.property_id) for row in rows}
        success = all(result['success'] for result in properties.values())

        log_manager.operation_end_log(
            log_info,
            success=success,
            result_info={
                'properties': len(properties),
                'failed': sum(1 for result in properties.values() if not result['success']),
                'corrections': sum(len(result['corrections']) for result in properties.values())
            }
        )

        return {'success': success, 'properties': properties, 'error': None}
