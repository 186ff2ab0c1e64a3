# supply_inventory/services/ledger_service.py
from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from supply_inventory.core.matching import extract_quantity, split_mentions
from supply_inventory.db import raise_if_unavailable
from supply_inventory.exceptions import (
    NotFoundError, UnresolvedItemWarning, ValidationError
)
from supply_inventory.logging_setup import get_logger
from supply_inventory.models import InventoryMovement, InventoryRecord, MovementType, Supply
from supply_inventory.services.normalization_service import NormalizationService
from supply_inventory.utils.helpers import as_float, mask_id
from supply_inventory.utils.validation import (
    MANUAL_IN_SOURCES, require_identifiers, validate_absolute_quantity,
    validate_choice, validate_positive_quantity, validate_reason, validate_thresholds
)

logger = get_logger('ledger')

SOURCE_EVENT_SUPPLY_OUT = 'event:supply_out'
SOURCE_EVENT_LINEN_USED = 'event:linen_used'
SOURCE_SEED = 'seed'

LINEN_NAME_PATTERNS = ('%povlečení%', '%ložní prádlo%', '%prádlo%')


class LedgerService:
    """Service for appending stock movements to the inventory ledger.

    Movements are only ever inserted. The matching inventory record's cached
    quantity follows through the store-side movement hook.
    """

    def __init__(self, session: Session, normalizer: Optional[NormalizationService] = None):
        """Initialize the ledger service.

        Args:
            session: Database session
            normalizer: Optional normalization service (created on demand)
        """
        self.session = session
        self._normalizer = normalizer

    @property
    def normalizer(self) -> NormalizationService:
        if self._normalizer is None:
            self._normalizer = NormalizationService(self.session)
        return self._normalizer

    def _get_supply(self, tenant_id: str, supply_id: int) -> Supply:
        supply = self.session.query(Supply).filter(
            Supply.id == supply_id,
            Supply.tenant_id == tenant_id
        ).first()
        if not supply:
            raise NotFoundError(f"Supply {supply_id} not found")
        return supply

    def _ensure_record(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        lock: bool = False
    ) -> InventoryRecord:
        """Get the inventory record for a triple, creating an empty one if needed.

        Args:
            lock: Take a row lock so concurrent writers on the triple serialize
        """
        query = self.session.query(InventoryRecord).filter(
            InventoryRecord.tenant_id == tenant_id,
            InventoryRecord.property_id == property_id,
            InventoryRecord.supply_id == supply_id
        ).populate_existing()
        if lock:
            query = query.with_for_update()

        record = query.first()
        if record is None:
            record = InventoryRecord(
                tenant_id=tenant_id,
                property_id=property_id,
                supply_id=supply_id,
                current_qty=0.0,
                min_qty=0.0,
                max_qty=0.0
            )
            self.session.add(record)
            # The movement hook updates by triple, so the row must exist first
            self.session.flush()

        return record

    def _write_movement(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        movement_type: MovementType,
        qty: float,
        source: str,
        ref_event_id: Optional[str] = None,
        lock_record: bool = False
    ) -> InventoryMovement:
        self._ensure_record(tenant_id, property_id, supply_id, lock=lock_record)

        movement = InventoryMovement(
            tenant_id=tenant_id,
            property_id=property_id,
            supply_id=supply_id,
            movement_type=movement_type,
            qty=qty,
            source=source,
            ref_event_id=ref_event_id
        )
        self.session.add(movement)
        self.session.commit()

        return movement

    def _recorded_supplies(self, tenant_id: str, event_id: str, source: str) -> set:
        rows = self.session.query(InventoryMovement.supply_id).filter(
            InventoryMovement.tenant_id == tenant_id,
            InventoryMovement.ref_event_id == event_id,
            InventoryMovement.source == source
        ).all()
        return {row.supply_id for row in rows}

    @staticmethod
    def _event_identity(event: Mapping) -> Tuple[str, str, str]:
        if not isinstance(event, Mapping):
            raise ValidationError("Event must be a mapping", code='INVALID_EVENT')

        event_id = event.get('id')
        tenant_id = event.get('tenant_id')
        property_id = event.get('property_id')
        require_identifiers(id=event_id, tenant_id=tenant_id, property_id=property_id)

        return str(event_id), tenant_id, property_id

    @staticmethod
    def extract_event_mentions(event: Mapping) -> List[Tuple[str, float]]:
        """Pull (text, qty) mentions out of an operational event.

        A structured ``payload['items']`` list wins over the free-text note.
        List entries are either strings (qty 1) or mappings with ``name`` and
        an optional ``qty``. The note is split on commas/newlines and each
        part may carry a leading multiplier ("3x Domestos").
        """
        payload = event.get('payload') or {}
        items = payload.get('items') if isinstance(payload, Mapping) else None

        mentions = []
        if isinstance(items, (list, tuple)) and items:
            for item in items:
                if isinstance(item, Mapping):
                    name = str(item.get('name') or '').strip()
                    qty = as_float(item.get('qty'), 1.0)
                else:
                    name = str(item).strip()
                    qty = 1
                if name:
                    mentions.append((name, qty))
        elif event.get('note'):
            for part in split_mentions(event['note']):
                qty, name = extract_quantity(part)
                mentions.append((name, qty))

        return mentions

    def _write_event_movements(
        self,
        tenant_id: str,
        property_id: str,
        event_id: str,
        source: str,
        quantities: Mapping[int, Tuple[str, float]]
    ) -> Dict:
        """Write one ``out`` movement per supply, skipping supplies already recorded for the event."""
        movements = []
        errors = []
        skipped = []

        recorded = self._recorded_supplies(tenant_id, event_id, source)

        for supply_id, (name, qty) in quantities.items():
            if supply_id in recorded:
                skipped.append(f'Item "{name}" already recorded for event {event_id}')
                continue

            try:
                movement = self._write_movement(
                    tenant_id, property_id, supply_id, MovementType.OUT, qty, source,
                    ref_event_id=event_id
                )
                movements.append(movement.to_dict())
            except IntegrityError:
                # Another writer recorded the same event item first
                self.session.rollback()
                skipped.append(f'Item "{name}" already recorded for event {event_id}')
            except SQLAlchemyError as e:
                self.session.rollback()
                raise_if_unavailable(e)
                logger.error(f"Error creating movement for {name}: {str(e)}")
                errors.append(f"Failed to create movement for {name}: {str(e)}")

        return {'movements': movements, 'errors': errors, 'skipped': skipped}

    def apply_supply_out_from_event(self, event: Mapping) -> Dict:
        """Record supplies consumed according to an operational event.

        Args:
            event: Mapping with id, tenant_id, property_id and either
                   payload['items'] or a free-text note

        Returns:
            Dictionary with created movements, per-item errors and items
            skipped because the event was already applied
        """
        result = {'movements': [], 'errors': [], 'skipped': []}

        try:
            event_id, tenant_id, property_id = self._event_identity(event)
        except ValidationError as e:
            result['errors'].append(e.message)
            return result

        mentions = self.extract_event_mentions(event)
        if not mentions:
            result['errors'].append('No items found in event')
            return result

        normalized = self.normalizer.normalize_mentions(mentions, tenant_id)

        # Several mentions of one supply within an event become one movement
        quantities = OrderedDict()
        for item in normalized:
            if item.needs_mapping or item.supply_id is None:
                result['errors'].append(UnresolvedItemWarning(item.original_text).message)
                continue
            if not item.qty or item.qty <= 0:
                result['errors'].append(f'Item "{item.original_text}" has no positive quantity')
                continue

            name, qty = quantities.get(item.supply_id, (item.name, 0))
            quantities[item.supply_id] = (name, qty + item.qty)

        if quantities:
            try:
                written = self._write_event_movements(
                    tenant_id, property_id, event_id, SOURCE_EVENT_SUPPLY_OUT, quantities
                )
            except SQLAlchemyError as e:
                self.session.rollback()
                raise_if_unavailable(e)
                logger.error(f"Error applying event {event_id}: {str(e)}")
                result['errors'].append(f"Failed to process event: {str(e)}")
                return result

            result['movements'].extend(written['movements'])
            result['errors'].extend(written['errors'])
            result['skipped'].extend(written['skipped'])

        logger.info(
            f"Supply out applied: event={event_id} items={len(mentions)} "
            f"movements={len(result['movements'])} errors={len(result['errors'])} "
            f"skipped={len(result['skipped'])} tenant={mask_id(tenant_id)}"
        )

        return result

    def find_linen_supply(self, tenant_id: str) -> Optional[Supply]:
        """Locate the tenant's linen supply by name."""
        return self.session.query(Supply).filter(
            Supply.tenant_id == tenant_id,
            Supply.is_active.is_(True),
            or_(*[Supply.name.ilike(pattern) for pattern in LINEN_NAME_PATTERNS])
        ).order_by(Supply.id).first()

    def apply_linen_usage_from_event(self, event: Mapping) -> Dict:
        """Record linen sets changed during a cleaning.

        Args:
            event: Mapping with id, tenant_id, property_id and payload
                   {'changed': int, 'dirty': int}

        Returns:
            Dictionary with created movements, errors and skipped items
        """
        result = {'movements': [], 'errors': [], 'skipped': []}

        try:
            event_id, tenant_id, property_id = self._event_identity(event)
        except ValidationError as e:
            result['errors'].append(e.message)
            return result

        payload = event.get('payload') or {}
        changed = as_float(payload.get('changed'))
        dirty = as_float(payload.get('dirty'))

        if changed <= 0 and dirty <= 0:
            return result

        try:
            linen = self.find_linen_supply(tenant_id)
            if linen is None:
                result['errors'].append('Linen supply not found')
                return result

            if changed > 0:
                written = self._write_event_movements(
                    tenant_id, property_id, event_id, SOURCE_EVENT_LINEN_USED,
                    {linen.id: (linen.name, changed)}
                )
                for key in result:
                    result[key].extend(written[key])

        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error applying linen usage for event {event_id}: {str(e)}")
            result['errors'].append(f"Failed to process linen usage: {str(e)}")

        return result

    def apply_manual_in(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        qty: float,
        source: str = 'manual'
    ) -> Dict:
        """Record a manual restock or purchase.

        Returns:
            Dictionary with success flag, the movement (if any) and error message (if not)
        """
        try:
            require_identifiers(tenant_id=tenant_id, property_id=property_id, supply_id=supply_id)
            qty = validate_positive_quantity(qty)
            validate_choice(source, MANUAL_IN_SOURCES, 'source')

            self._get_supply(tenant_id, supply_id)
            movement = self._write_movement(
                tenant_id, property_id, supply_id, MovementType.IN, qty, source
            )

        except (ValidationError, NotFoundError) as e:
            return {'success': False, 'movement': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error creating manual in movement: {str(e)}")
            return {'success': False, 'movement': None, 'error': f"Failed to add inventory: {str(e)}"}

        logger.info(
            f"Manual in applied: property={mask_id(property_id)} supply={mask_id(supply_id)} "
            f"qty={qty} source={source} tenant={mask_id(tenant_id)}"
        )

        return {'success': True, 'movement': movement.to_dict(), 'error': None}

    def apply_manual_adjust(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        qty: float,
        reason: str
    ) -> Dict:
        """Record a manual correction.

        ``qty`` is the new absolute stock level, not a delta. Callers are
        trusted to supply a sane target; only a reason is required.

        Returns:
            Dictionary with success flag, the movement (if any) and error message (if not)
        """
        try:
            require_identifiers(tenant_id=tenant_id, property_id=property_id, supply_id=supply_id)
            qty = validate_absolute_quantity(qty)
            reason = validate_reason(reason)

            self._get_supply(tenant_id, supply_id)
            movement = self._write_movement(
                tenant_id, property_id, supply_id, MovementType.ADJUST, qty,
                f"manual:{reason}", lock_record=True
            )

        except (ValidationError, NotFoundError) as e:
            return {'success': False, 'movement': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error creating adjustment movement: {str(e)}")
            return {'success': False, 'movement': None, 'error': f"Failed to adjust inventory: {str(e)}"}

        logger.info(
            f"Manual adjustment applied: property={mask_id(property_id)} supply={mask_id(supply_id)} "
            f"qty={qty} reason={reason} tenant={mask_id(tenant_id)}"
        )

        return {'success': True, 'movement': movement.to_dict(), 'error': None}

    def seed_inventory_record(
        self,
        tenant_id: str,
        property_id: str,
        supply_id: int,
        current_qty: float,
        min_qty: float = 0.0,
        max_qty: float = 0.0
    ) -> Dict:
        """Create (or re-seed) an inventory record with an opening balance.

        The opening balance is written as an ``adjust`` movement so the
        cached quantity stays reproducible from the ledger.

        Returns:
            Dictionary with success flag, record, opening movement and error message
        """
        try:
            require_identifiers(tenant_id=tenant_id, property_id=property_id, supply_id=supply_id)
            current_qty = validate_absolute_quantity(current_qty)
            errors = validate_thresholds(min_qty, max_qty)
            if errors:
                raise ValidationError('; '.join(errors.values()), code='INVALID_THRESHOLDS', details=errors)

            self._get_supply(tenant_id, supply_id)

            record = self._ensure_record(tenant_id, property_id, supply_id, lock=True)
            record.min_qty = float(min_qty or 0)
            record.max_qty = float(max_qty or 0)
            record.current_qty = current_qty
            # Threshold update must hit the row before the movement hook bumps its version
            self.session.flush()

            movement = InventoryMovement(
                tenant_id=tenant_id,
                property_id=property_id,
                supply_id=supply_id,
                movement_type=MovementType.ADJUST,
                qty=current_qty,
                source=SOURCE_SEED
            )
            self.session.add(movement)
            self.session.commit()

        except (ValidationError, NotFoundError) as e:
            return {'success': False, 'record': None, 'movement': None, 'error': e.message}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error seeding inventory record: {str(e)}")
            return {'success': False, 'record': None, 'movement': None,
                    'error': f"Failed to seed inventory: {str(e)}"}

        logger.info(
            f"Inventory seeded: property={mask_id(property_id)} supply={mask_id(supply_id)} "
            f"qty={current_qty} min={record.min_qty} max={record.max_qty} tenant={mask_id(tenant_id)}"
        )

        return {
            'success': True,
            'record': {
                'id': record.id,
                'supply_id': record.supply_id,
                'current_qty': record.current_qty,
                'min_qty': record.min_qty,
                'max_qty': record.max_qty
            },
            'movement': movement.to_dict(),
            'error': None
        }
