"""
Tests for the recount reconciler against an in-memory database.
"""
import unittest
from unittest.mock import patch

from sqlalchemy import update

from supply_inventory.models import InventoryRecord
from supply_inventory.services.ledger_service import LedgerService
from supply_inventory.services.reconciliation_service import ReconciliationService
from supply_inventory.tests.fixtures import (
    DatabaseTestCase, OTHER_PROPERTY_ID, PROPERTY_ID, TENANT_ID
)


class TestReconciliationService(DatabaseTestCase):
    """Test suite for ReconciliationService."""

    def setUp(self):
        super().setUp()
        self.domestos = self.add_supply('Domestos')
        self.jar = self.add_supply('Jar')
        self.ledger = LedgerService(self.session)
        self.service = ReconciliationService(self.session)

    def test_recount_matches_movement_fold(self):
        self.ledger.apply_manual_in(TENANT_ID, PROPERTY_ID, self.domestos.id, 10)
        self.ledger.apply_supply_out_from_event({
            'id': 'evt-1', 'tenant_id': TENANT_ID, 'property_id': PROPERTY_ID, 'note': '3x Domestos'
        })
        self.ledger.apply_manual_adjust(TENANT_ID, PROPERTY_ID, self.domestos.id, 5, 'inventura')
        self.ledger.apply_manual_in(TENANT_ID, PROPERTY_ID, self.domestos.id, 2)

        result = self.service.recount(TENANT_ID, PROPERTY_ID)

        self.assertTrue(result['success'])
        self.assertEqual(result['updated'], 1)
        self.assertEqual(result['corrections'], [])
        self.assertEqual(self.get_record(self.domestos).current_qty, 7)

    def test_recount_corrects_drift(self):
        self.ledger.seed_inventory_record(TENANT_ID, PROPERTY_ID, self.domestos.id, 5, 2, 10)
        record = self.get_record(self.domestos)
        self.corrupt_cached_qty(record.id, 42)

        result = self.service.recount(TENANT_ID, PROPERTY_ID)

        self.assertTrue(result['success'])
        self.assertEqual(result['corrections'], [
            {'supply_id': self.domestos.id, 'previous_qty': 42, 'recounted_qty': 5}
        ])
        self.assertEqual(self.get_record(self.domestos).current_qty, 5)

    def test_recount_is_idempotent(self):
        self.ledger.seed_inventory_record(TENANT_ID, PROPERTY_ID, self.domestos.id, 5)
        self.ledger.apply_manual_in(TENANT_ID, PROPERTY_ID, self.jar.id, 4)
        self.corrupt_cached_qty(self.get_record(self.jar).id, 0)

        first = self.service.recount(TENANT_ID, PROPERTY_ID)
        state = [(r.supply_id, r.current_qty) for r in self.session.query(InventoryRecord).order_by(InventoryRecord.id)]
        second = self.service.recount(TENANT_ID, PROPERTY_ID)

        self.assertEqual(len(first['corrections']), 1)
        self.assertEqual(second['corrections'], [])
        self.assertEqual(
            [(r.supply_id, r.current_qty) for r in self.session.query(InventoryRecord).order_by(InventoryRecord.id)],
            state
        )

    def test_record_without_movements_recounts_to_zero(self):
        self.add_record(self.jar, current_qty=8)

        result = self.service.recount(TENANT_ID, PROPERTY_ID)

        self.assertEqual(result['corrections'][0]['recounted_qty'], 0)
        self.assertEqual(self.get_record(self.jar).current_qty, 0)

    def test_concurrent_write_aborts_recount(self):
        self.ledger.seed_inventory_record(TENANT_ID, PROPERTY_ID, self.domestos.id, 5)
        record_id = self.get_record(self.domestos).id
        self.corrupt_cached_qty(record_id, 42)

        table = InventoryRecord.__table__
        history = self.service._movement_history

        def concurrent_write(record):
            # Another writer bumps the version after the record was read
            self.session.execute(
                update(table).where(table.c.id == record.id).values(version=table.c.version + 1)
            )
            return history(record)

        with patch.object(self.service, '_movement_history', side_effect=concurrent_write):
            result = self.service.recount(TENANT_ID, PROPERTY_ID)

        self.assertFalse(result['success'])
        self.assertIn('retry', result['error'])
        self.assertEqual(self.get_record(self.domestos).current_qty, 42)

    def test_recount_requires_property(self):
        result = self.service.recount(TENANT_ID, None)

        self.assertFalse(result['success'])
        self.assertIn('property_id is required', result['error'])

    def test_recount_tenant(self):
        self.ledger.seed_inventory_record(TENANT_ID, PROPERTY_ID, self.domestos.id, 5)
        self.ledger.seed_inventory_record(TENANT_ID, OTHER_PROPERTY_ID, self.domestos.id, 3)
        self.corrupt_cached_qty(self.get_record(self.domestos, OTHER_PROPERTY_ID).id, 0)

        result = self.service.recount_tenant(TENANT_ID)

        self.assertTrue(result['success'])
        self.assertEqual(set(result['properties']), {PROPERTY_ID, OTHER_PROPERTY_ID})
        self.assertEqual(result['properties'][PROPERTY_ID]['corrections'], [])
        self.assertEqual(len(result['properties'][OTHER_PROPERTY_ID]['corrections']), 1)
        self.assertEqual(self.get_record(self.domestos, OTHER_PROPERTY_ID).current_qty, 3)


if __name__ == '__main__':
    unittest.main()
