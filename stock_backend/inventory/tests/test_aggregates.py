# inventory/tests/test_aggregates.py

import uuid
from datetime import timedelta

from django.core.exceptions import ValidationError

from inventory.models import LedgerEntry, Lot, StockAggregate
from inventory.services import aggregates, allocator, lifecycle
from inventory.services.exceptions import ConsistencyFault

from .base import InventoryTestCase


class ReconcileTests(InventoryTestCase):
    """
    GUARANTEES:
    - reconcile recomputes the total from ACTIVE lots and overwrites the cache
    - drift is logged as a warning; no drift is silent
    - reconciled_at is stamped either way
    """

    def test_no_drift(self):
        self.make_lot(10, None)
        allocator.fulfill(self.product.id, 4, "A-1")

        cached, computed = aggregates.reconcile_with_drift(self.product.id)

        self.assertEqual((cached, computed), (6, 6))
        row = StockAggregate.objects.get(product=self.product)
        self.assertIsNotNone(row.reconciled_at)

    def test_drift_is_corrected_and_logged(self):
        self.make_lot(10, None)
        StockAggregate.objects.filter(product=self.product).update(total=999)

        with self.assertLogs("inventory.aggregates", level="WARNING") as logs:
            total = aggregates.reconcile(self.product.id)

        self.assertEqual(total, 10)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 10)
        self.assertIn("drift", logs.output[0])

    def test_expired_and_quarantined_lots_do_not_count(self):
        kept = self.make_lot(10, None)
        held = self.make_lot(5, None)
        lifecycle.quarantine_lot(held.id, "inspection")

        self.assertEqual(aggregates.compute_total(self.product.id), 10)
        self.assertEqual(aggregates.reconcile(self.product.id), kept.quantity)

    def test_reconcile_expires_lots_past_their_date(self):
        lot = self.make_lot(10, self.today + timedelta(days=1))
        self.set_today(self.today + timedelta(days=3))

        cached, computed = aggregates.reconcile_with_drift(self.product.id)

        self.assertEqual((cached, computed), (0, 0))
        self.assertEqual(aggregates.read_aggregate(self.product.id), 0)
        self.assertEqual(allocator.available_quantity(self.product.id), 0)
        self.assertEqual(self.reload(lot).status, Lot.Status.EXPIRED)
        self.assertTrue(
            LedgerEntry.objects.filter(
                lot=lot, transaction_type=LedgerEntry.TransactionType.EXPIRY
            ).exists()
        )

    def test_drift_is_still_reported_alongside_expiry(self):
        self.make_lot(10, self.today + timedelta(days=1))
        kept = self.make_lot(4, None)
        StockAggregate.objects.filter(product=self.product).update(total=3)
        self.set_today(self.today + timedelta(days=3))

        with self.assertLogs("inventory.aggregates", level="WARNING"):
            total = aggregates.reconcile(self.product.id)

        self.assertEqual(total, kept.quantity)
        self.assertAggregateConsistent()

    def test_reconcile_all_reports_only_drifted_products(self):
        other = self.make_product("Amoxicillin 250mg", "AMX-250")
        self.make_lot(3, None)
        self.make_lot(8, None, product=other)
        StockAggregate.objects.filter(product=other).update(total=1)

        drifted = aggregates.reconcile_all()

        self.assertEqual(drifted, {other.id: (1, 8)})
        self.assertAggregateConsistent(other)

    def test_unknown_product(self):
        with self.assertRaises(ValidationError):
            aggregates.reconcile(uuid.uuid4())


class AggregateReadTests(InventoryTestCase):
    def test_product_without_lots_reads_zero(self):
        self.assertEqual(aggregates.read_aggregate(self.product.id), 0)
        self.assertEqual(aggregates.read_aggregate(uuid.uuid4()), 0)

    def test_negative_total_is_a_consistency_fault(self):
        self.make_lot(2, None)
        aggregate = StockAggregate.objects.get(product=self.product)

        with self.assertLogs("inventory.aggregates", level="CRITICAL"):
            with self.assertRaises(ConsistencyFault):
                aggregates.apply_delta(aggregate, -3)

        self.assertEqual(aggregates.read_aggregate(self.product.id), 2)
