"""
Shared fixtures for service tests: an in-memory SQLite database built from
the real models, plus helpers for seeding catalog rows and movements.
"""
import unittest

from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from supply_inventory.models import (
    Base, InventoryMovement, InventoryRecord, MovementType, Property, Supply
)

TENANT_ID = 'tenant-0001-aaaa'
OTHER_TENANT_ID = 'tenant-0002-bbbb'
PROPERTY_ID = 'property-0001'
OTHER_PROPERTY_ID = 'property-0002'


class DatabaseTestCase(unittest.TestCase):
    """Base test case with a fresh in-memory database per test."""

    def setUp(self):
        self.engine = create_engine(
            'sqlite://',
            poolclass=StaticPool,
            connect_args={'check_same_thread': False}
        )
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine)()

    def tearDown(self):
        self.session.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def add_supply(self, name, unit='ks', tenant_id=TENANT_ID, is_active=True):
        supply = Supply(tenant_id=tenant_id, name=name, unit=unit, is_active=is_active)
        self.session.add(supply)
        self.session.commit()
        return supply

    def add_property(self, property_id=PROPERTY_ID, name='Apartmán Vinohrady', tenant_id=TENANT_ID):
        prop = Property(id=property_id, tenant_id=tenant_id, name=name)
        self.session.add(prop)
        self.session.commit()
        return prop

    def add_record(self, supply, current_qty=0.0, min_qty=0.0, max_qty=0.0,
                   property_id=PROPERTY_ID, tenant_id=TENANT_ID):
        record = InventoryRecord(
            tenant_id=tenant_id,
            property_id=property_id,
            supply_id=supply.id,
            current_qty=current_qty,
            min_qty=min_qty,
            max_qty=max_qty
        )
        self.session.add(record)
        self.session.commit()
        return record

    def add_movement(self, supply, movement_type, qty, created_at=None, source='test',
                     property_id=PROPERTY_ID, tenant_id=TENANT_ID, ref_event_id=None):
        movement = InventoryMovement(
            tenant_id=tenant_id,
            property_id=property_id,
            supply_id=supply.id,
            movement_type=MovementType.from_string(movement_type),
            qty=qty,
            source=source,
            ref_event_id=ref_event_id
        )
        if created_at is not None:
            movement.created_at = created_at
        self.session.add(movement)
        self.session.commit()
        return movement

    def get_record(self, supply, property_id=PROPERTY_ID, tenant_id=TENANT_ID):
        return self.session.query(InventoryRecord).filter(
            InventoryRecord.tenant_id == tenant_id,
            InventoryRecord.property_id == property_id,
            InventoryRecord.supply_id == supply.id
        ).populate_existing().first()

    def corrupt_cached_qty(self, record_id, qty):
        """Overwrite a cached quantity behind the ledger's back."""
        table = InventoryRecord.__table__
        self.session.execute(
            update(table).where(table.c.id == record_id).values(current_qty=qty)
        )
        self.session.commit()
