# inventory/tests/test_returns.py

from datetime import date

from django.core.exceptions import ValidationError

from inventory.models import LedgerEntry, Lot
from inventory.services import aggregates, allocator, returns

from .base import InventoryTestCase


class ReturnTests(InventoryTestCase):
    """
    Returns against a fulfillment reference.

    GUARANTEES:
    - units go back to the lots they were taken from, latest first
    - per-lot and per-reference ceilings are never exceeded
    - depleted lots are revived by a return
    """

    def setUp(self):
        super().setUp()
        self.early = self.make_lot(3, date(2025, 1, 1))
        self.late = self.make_lot(10, date(2025, 6, 1))
        allocator.fulfill(self.product.id, 5, "SALE-9", "cashier")

    def test_full_return_restores_every_lot(self):
        lines = returns.return_fulfillment(self.product.id, "SALE-9", actor="cashier")

        self.assertEqual(
            sorted((line.lot_id, line.quantity) for line in lines),
            sorted([(self.early.id, 3), (self.late.id, 2)]),
        )
        self.assertEqual(self.reload(self.early).quantity, 3)
        self.assertEqual(self.reload(self.early).status, Lot.Status.ACTIVE)
        self.assertEqual(self.reload(self.late).quantity, 10)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 13)
        self.assertAggregateConsistent()

        entries = LedgerEntry.objects.filter(transaction_type=LedgerEntry.TransactionType.RETURN)
        self.assertEqual(entries.count(), 2)
        for entry in entries:
            self.assertEqual(entry.reference_id, "SALE-9")
            self.assertGreater(entry.quantity_change, 0)

    def test_partial_return_goes_to_last_consumed_lot(self):
        lines = returns.return_fulfillment(self.product.id, "SALE-9", 1, "wrong item")

        self.assertEqual([(line.lot_id, line.quantity) for line in lines], [(self.late.id, 1)])
        self.assertEqual(self.reload(self.late).quantity, 9)
        self.assertEqual(self.reload(self.early).quantity, 0)

    def test_cumulative_returns_cannot_exceed_fulfillment(self):
        returns.return_fulfillment(self.product.id, "SALE-9", 4)

        with self.assertRaises(ValidationError):
            returns.return_fulfillment(self.product.id, "SALE-9", 2)

        returns.return_fulfillment(self.product.id, "SALE-9", 1)
        with self.assertRaises(ValidationError):
            returns.return_fulfillment(self.product.id, "SALE-9")

        self.assertEqual(aggregates.read_aggregate(self.product.id), 13)
        self.assertLotInvariants()

    def test_over_return_is_rejected_without_mutation(self):
        with self.assertRaises(ValidationError):
            returns.return_fulfillment(self.product.id, "SALE-9", 6)

        self.assertFalse(
            LedgerEntry.objects.filter(transaction_type=LedgerEntry.TransactionType.RETURN).exists()
        )
        self.assertEqual(aggregates.read_aggregate(self.product.id), 8)

    def test_unknown_reference_or_product(self):
        with self.assertRaises(ValidationError):
            returns.return_fulfillment(self.product.id, "NOPE")

        other = self.make_product("Saline", "SAL-1")
        with self.assertRaises(ValidationError):
            returns.return_fulfillment(other.id, "SALE-9")

    def test_return_to_expired_lot_does_not_count_toward_stock(self):
        self.set_today(date(2025, 3, 1))

        returns.return_fulfillment(self.product.id, "SALE-9")

        early = self.reload(self.early)
        self.assertEqual(early.quantity, 3)
        self.assertEqual(early.status, Lot.Status.EXPIRED)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 10)
        self.assertAggregateConsistent()
