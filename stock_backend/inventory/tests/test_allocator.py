# inventory/tests/test_allocator.py

from datetime import date, timedelta
from unittest import mock

from django.core.exceptions import ValidationError

from inventory.models import Fulfillment, LedgerEntry, Lot
from inventory.services import aggregates, allocator, lifecycle
from inventory.services.exceptions import ConsistencyFault, InsufficientStock

from .base import InventoryTestCase


class FefoOrderingTests(InventoryTestCase):
    """
    FEFO allocation.

    GUARANTEES:
    - Earliest expiry is consumed first
    - Lots without expiry are consumed last
    - Ties break on creation order
    """

    def test_earliest_expiry_first_and_no_expiry_last(self):
        lot_a = self.make_lot(10, self.today + timedelta(days=5))
        lot_b = self.make_lot(5, self.today + timedelta(days=2))
        lot_c = self.make_lot(100, None)

        result = allocator.fulfill(self.product.id, 12, "ORDER-1", "cashier")

        self.assertEqual(
            [(line.lot_id, line.quantity) for line in result.lines],
            [(lot_b.id, 5), (lot_a.id, 7)],
        )
        self.assertEqual(self.reload(lot_b).status, Lot.Status.DEPLETED)
        self.assertEqual(self.reload(lot_a).quantity, 3)
        self.assertEqual(self.reload(lot_c).quantity, 100)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 103)
        self.assertAggregateConsistent()

    def test_same_expiry_breaks_tie_on_creation_order(self):
        expiry = self.today + timedelta(days=30)
        first = self.make_lot(4, expiry)
        second = self.make_lot(4, expiry)

        result = allocator.fulfill(self.product.id, 6, "ORDER-TIE")

        self.assertEqual(
            [(line.lot_id, line.quantity) for line in result.lines],
            [(first.id, 4), (second.id, 2)],
        )

    def test_spans_lots_in_date_order(self):
        lot_a = self.make_lot(3, date(2025, 1, 1))
        lot_b = self.make_lot(3, date(2025, 6, 1))

        result = allocator.fulfill(self.product.id, 4, "ORDER-2")

        self.assertEqual(
            [(line.lot_id, line.quantity) for line in result.lines],
            [(lot_a.id, 3), (lot_b.id, 1)],
        )
        self.assertEqual(self.reload(lot_a).status, Lot.Status.DEPLETED)
        self.assertEqual(self.reload(lot_b).quantity, 2)
        self.assertEqual(self.reload(lot_b).status, Lot.Status.ACTIVE)

    def test_one_sale_entry_per_touched_lot(self):
        self.make_lot(3, date(2025, 1, 1))
        self.make_lot(3, date(2025, 6, 1))
        untouched = self.make_lot(3, date(2025, 9, 1))

        allocator.fulfill(self.product.id, 4, "ORDER-3", "cashier")

        sales = LedgerEntry.objects.filter(transaction_type=LedgerEntry.TransactionType.SALE)
        self.assertEqual(sales.count(), 2)
        self.assertEqual(sorted(e.quantity_change for e in sales), [-3, -1])
        self.assertFalse(sales.filter(lot=untouched).exists())
        for entry in sales:
            self.assertEqual(entry.reference_id, "ORDER-3")
            self.assertEqual(entry.actor, "cashier")
            self.assertEqual(entry.quantity_after, entry.quantity_before + entry.quantity_change)


class AvailabilityTests(InventoryTestCase):
    """
    GUARANTEES:
    - Exact availability succeeds and empties the aggregate
    - One unit more fails with InsufficientStock and mutates nothing
    - Expired, quarantined and reserved units are not allocatable
    """

    def test_exact_availability_succeeds(self):
        self.make_lot(7, date(2025, 3, 1))
        self.make_lot(5, None)

        result = allocator.fulfill(self.product.id, 12, "EXACT")

        self.assertEqual(sum(line.quantity for line in result.lines), 12)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 0)
        self.assertFalse(Lot.objects.filter(status=Lot.Status.ACTIVE).exists())
        self.assertAggregateConsistent()

    def test_one_more_than_available_fails_without_mutation(self):
        lot_a = self.make_lot(7, date(2025, 3, 1))
        lot_b = self.make_lot(5, None)
        ledger_count = LedgerEntry.objects.count()

        with self.assertRaises(InsufficientStock) as ctx:
            allocator.fulfill(self.product.id, 13, "TOO-MUCH")

        self.assertEqual(ctx.exception.available, 12)
        self.assertEqual(ctx.exception.requested, 13)
        self.assertEqual(self.reload(lot_a).quantity, 7)
        self.assertEqual(self.reload(lot_b).quantity, 5)
        self.assertEqual(LedgerEntry.objects.count(), ledger_count)
        self.assertFalse(Fulfillment.objects.filter(reference="TOO-MUCH").exists())
        self.assertEqual(aggregates.read_aggregate(self.product.id), 12)

    def test_expired_lot_is_never_allocated_even_before_sweep(self):
        lot = self.make_lot(10, self.today + timedelta(days=1))
        self.set_today(self.today + timedelta(days=5))

        with self.assertRaises(InsufficientStock) as ctx:
            allocator.fulfill(self.product.id, 1, "LATE")

        self.assertEqual(ctx.exception.available, 0)
        # the failed unit rolled back its own status refresh as well
        self.assertEqual(self.reload(lot).status, Lot.Status.ACTIVE)
        self.assertEqual(self.reload(lot).quantity, 10)

    def test_lot_expiring_today_is_still_allocatable(self):
        self.make_lot(2, self.today)

        result = allocator.fulfill(self.product.id, 2, "TODAY")

        self.assertEqual(result.quantity, 2)

    def test_quarantined_lot_is_skipped(self):
        bad = self.make_lot(10, date(2025, 1, 1))
        good = self.make_lot(10, date(2025, 2, 1))
        lifecycle.quarantine_lot(bad.id, "Recall notice", "qa")

        result = allocator.fulfill(self.product.id, 4, "Q-1")

        self.assertEqual([line.lot_id for line in result.lines], [good.id])
        self.assertEqual(self.reload(bad).quantity, 10)

    def test_reserved_units_are_not_allocated(self):
        lot = self.make_lot(10, date(2025, 1, 1))
        lifecycle.reserve(lot.id, 8)

        self.assertEqual(allocator.available_quantity(self.product.id), 2)
        with self.assertRaises(InsufficientStock):
            allocator.fulfill(self.product.id, 3, "R-1")

        allocator.fulfill(self.product.id, 2, "R-2")
        lot = self.reload(lot)
        self.assertEqual(lot.quantity, 8)
        self.assertEqual(lot.reserved_quantity, 8)


class FulfillmentScenarioTests(InventoryTestCase):
    def test_fulfill_then_shortfall_then_count_correction(self):
        lot = self.make_lot(100, None)

        allocator.fulfill(self.product.id, 40, "S-1")
        sale = LedgerEntry.objects.get(transaction_type=LedgerEntry.TransactionType.SALE)
        self.assertEqual(sale.quantity_change, -40)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 60)

        with self.assertRaises(InsufficientStock):
            allocator.fulfill(self.product.id, 70, "S-2")
        self.assertEqual(self.reload(lot).quantity, 60)

        lifecycle.adjust_quantity(lot.id, 50, "count correction", "manager")

        adjustment = LedgerEntry.objects.get(
            transaction_type=LedgerEntry.TransactionType.ADJUSTMENT
        )
        self.assertEqual(adjustment.quantity_change, -10)
        self.assertEqual(adjustment.reason, "count correction")
        self.assertEqual(aggregates.read_aggregate(self.product.id), 50)
        self.assertAggregateConsistent()
        self.assertLotInvariants()


class IdempotencyTests(InventoryTestCase):
    """
    GUARANTEES:
    - Replaying a reference never deducts twice
    - Replay returns the original lines
    - Reusing a reference with a different quantity is rejected
    """

    def test_replay_returns_original_lines_without_deducting(self):
        lot_a = self.make_lot(3, date(2025, 1, 1))
        lot_b = self.make_lot(10, date(2025, 6, 1))

        first = allocator.fulfill(self.product.id, 5, "POS-42")
        again = allocator.fulfill(self.product.id, 5, "POS-42")

        self.assertFalse(first.replayed)
        self.assertTrue(again.replayed)
        self.assertEqual(
            [(l.lot_id, l.quantity) for l in again.lines],
            [(l.lot_id, l.quantity) for l in first.lines],
        )
        self.assertEqual(self.reload(lot_a).quantity, 0)
        self.assertEqual(self.reload(lot_b).quantity, 8)
        self.assertEqual(aggregates.read_aggregate(self.product.id), 8)
        self.assertEqual(Fulfillment.objects.filter(reference="POS-42").count(), 1)

    def test_reference_reuse_with_different_quantity_is_rejected(self):
        self.make_lot(10, None)
        allocator.fulfill(self.product.id, 2, "POS-43")

        with self.assertRaises(ValidationError):
            allocator.fulfill(self.product.id, 3, "POS-43")

        self.assertEqual(aggregates.read_aggregate(self.product.id), 8)

    def test_same_reference_on_another_product_is_independent(self):
        other = self.make_product("Ibuprofen 200mg", "IBU-200")
        self.make_lot(5, None)
        self.make_lot(5, None, product=other)

        allocator.fulfill(self.product.id, 1, "SHARED")
        result = allocator.fulfill(other.id, 1, "SHARED")

        self.assertFalse(result.replayed)
        self.assertEqual(aggregates.read_aggregate(other.id), 4)


class InputValidationTests(InventoryTestCase):
    def test_rejects_non_positive_quantity(self):
        self.make_lot(5, None)
        for bad in (0, -1, "abc", True):
            with self.assertRaises(ValidationError):
                allocator.fulfill(self.product.id, bad, f"BAD-{bad}")

    def test_rejects_blank_reference(self):
        self.make_lot(5, None)
        with self.assertRaises(ValidationError):
            allocator.fulfill(self.product.id, 1, "  ")

    def test_rejects_unknown_product(self):
        with self.assertRaises(ValidationError):
            allocator.fulfill("00000000-0000-0000-0000-000000000000", 1, "X")

    def test_rejects_inactive_product(self):
        inactive = self.make_product("Old Syrup", "OLD-1", is_active=False)
        with self.assertRaises(ValidationError):
            allocator.fulfill(inactive.id, 1, "X")


class ConsistencyFaultTests(InventoryTestCase):
    def test_lots_that_cannot_cover_a_passed_check_raise_and_roll_back(self):
        lot = self.make_lot(5, date(2025, 1, 1))

        with mock.patch.object(allocator, "available_quantity", return_value=50):
            with self.assertLogs("inventory.allocator", level="CRITICAL"):
                with self.assertRaises(ConsistencyFault):
                    allocator.fulfill(self.product.id, 20, "BROKEN")

        lot = self.reload(lot)
        self.assertEqual(lot.quantity, 5)
        self.assertEqual(lot.status, Lot.Status.ACTIVE)
        self.assertFalse(
            LedgerEntry.objects.filter(transaction_type=LedgerEntry.TransactionType.SALE).exists()
        )
        self.assertFalse(Fulfillment.objects.exists())
        self.assertEqual(aggregates.read_aggregate(self.product.id), 5)
