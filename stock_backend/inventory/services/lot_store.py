# inventory/services/lot_store.py

"""
LOT STORE (PHASE: LOT-LEVEL INVENTORY)

Purpose:
- Create lots (receipt of stock) with a generated batch number.
- The ONLY path that changes lot quantity / reservation / status / expiry.

Every mutation, in one unit of work:
1) lock the product's StockAggregate row (per-product lock)
2) expire stale lots (status is re-derived at mutation time)
3) lock the lot(s)
4) re-derive status, re-validate invariants, save
5) append the ledger entry
6) apply the aggregate delta

Any failure aborts the whole unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from inventory.models import LedgerEntry, Lot, StockAggregate
from inventory.signals import notify_stock_changed
from products.services import directory

from . import aggregates, ledger
from .batch_numbers import insert_with_batch_number
from .exceptions import LotNotFound
from .transactions import atomic_unit, run_in_unit
from .validation import to_cost, to_date, to_positive_qty

logger = logging.getLogger("inventory.lots")

FEFO_ORDER = (F("expiry_date").asc(nulls_last=True), "created_at", "id")

UNCHANGED = object()


@dataclass(frozen=True)
class LotMutation:
    """
    A requested change to one lot.

    Fields left as None (or UNCHANGED for expiry_date) keep their value.
    quarantined=True/False sets or clears the manual override.
    record_unchanged writes a ledger entry even when nothing moved
    (stock counts that confirm the book quantity).
    """

    quantity: int | None = None
    reserved_quantity: int | None = None
    expiry_date: object = UNCHANGED
    quarantined: bool | None = None
    transaction_type: str = LedgerEntry.TransactionType.ADJUSTMENT
    reason: str = ""
    actor: str = ""
    reference_id: str = ""
    reference_type: str = ""
    record_unchanged: bool = False


# ============================================================
# READS
# ============================================================

def get_lot(lot_id) -> Lot:
    try:
        return Lot.objects.select_related("product").get(pk=lot_id)
    except (Lot.DoesNotExist, ValueError, TypeError):
        raise LotNotFound(lot_id) from None


def lots_queryset(
    product_id=None,
    *,
    status: str | None = None,
    expiring_after: date | None = None,
    expiring_before: date | None = None,
):
    qs = Lot.objects.select_related("product")

    if product_id is not None:
        qs = qs.filter(product_id=product_id)

    if status:
        if status not in Lot.Status.values:
            raise ValidationError({"status": f"Unknown status: {status}"})
        qs = qs.filter(status=status)

    if expiring_after is not None:
        qs = qs.filter(expiry_date__gte=expiring_after)
    if expiring_before is not None:
        qs = qs.filter(expiry_date__lte=expiring_before)

    return qs.order_by(*FEFO_ORDER)


def list_lots(
    product_id,
    status: str | None = None,
    expiring_after: date | None = None,
    expiring_before: date | None = None,
) -> list[Lot]:
    """A product's lots in FEFO order, optionally filtered."""
    if not directory.exists(product_id):
        raise ValidationError({"product_id": "Unknown product"})

    return list(
        lots_queryset(
            product_id,
            status=status,
            expiring_after=to_date(expiring_after, field="expiring_after"),
            expiring_before=to_date(expiring_before, field="expiring_before"),
        )
    )


# ============================================================
# MUTATION CHOKE POINT
# ============================================================

def apply_mutation(
    lot: Lot,
    mutation: LotMutation,
    aggregate: StockAggregate,
    today: date,
) -> Lot:
    """
    Apply `mutation` to a lot that the caller has locked, under the
    caller's aggregate lock. Writes the paired ledger entry and aggregate
    delta. Raises ValidationError on any invariant violation.
    """
    if lot.product_id != aggregate.product_id:
        raise ValidationError("Lot does not belong to the locked product")

    quantity_before = int(lot.quantity)
    status_before = lot.status
    contribution_before = lot.aggregate_contribution

    new_quantity = quantity_before if mutation.quantity is None else int(mutation.quantity)
    new_reserved = (
        int(lot.reserved_quantity)
        if mutation.reserved_quantity is None
        else int(mutation.reserved_quantity)
    )

    if new_quantity < 0 or new_quantity > int(lot.original_quantity):
        raise ValidationError(
            {"quantity": f"quantity must be between 0 and {lot.original_quantity}"}
        )

    if new_reserved < 0 or new_reserved > new_quantity:
        raise ValidationError(
            {"reserved_quantity": f"reserved_quantity must be between 0 and {new_quantity}"}
        )

    lot.quantity = new_quantity
    lot.reserved_quantity = new_reserved
    if mutation.expiry_date is not UNCHANGED:
        lot.expiry_date = mutation.expiry_date

    lot.status = lot.derive_status(today, quarantined=mutation.quarantined)
    lot.save()

    if new_quantity != quantity_before or lot.status != status_before or mutation.record_unchanged:
        ledger.write_entry(
            lot=lot,
            transaction_type=mutation.transaction_type,
            quantity_before=quantity_before,
            quantity_after=new_quantity,
            reason=mutation.reason,
            actor=mutation.actor,
            reference_id=mutation.reference_id,
            reference_type=mutation.reference_type,
        )

    aggregates.apply_delta(aggregate, lot.aggregate_contribution - contribution_before)
    return lot


def expire_stale_lots(product_id, aggregate: StockAggregate, today: date) -> int:
    """
    Move ACTIVE lots whose expiry has passed to EXPIRED.
    Caller must hold the aggregate lock.
    """
    stale = list(
        Lot.objects.select_for_update()
        .filter(product_id=product_id, status=Lot.Status.ACTIVE, expiry_date__lt=today)
        .order_by(*FEFO_ORDER)
    )

    for lot in stale:
        apply_mutation(
            lot,
            LotMutation(
                transaction_type=LedgerEntry.TransactionType.EXPIRY,
                reason=f"Lot expired: {lot.batch_number}",
                actor="system",
            ),
            aggregate,
            today,
        )

    if stale:
        logger.info(
            "Expired stale lots",
            extra={"product_id": str(product_id), "count": len(stale)},
        )

    return len(stale)


def _mutate_unit(lot_id, build_mutation, today: date | None):
    today = today or timezone.localdate()

    product_id = Lot.objects.filter(pk=lot_id).values_list("product_id", flat=True).first()
    if product_id is None:
        raise LotNotFound(lot_id)

    aggregate = aggregates.lock_aggregate(product_id)
    expire_stale_lots(product_id, aggregate, today)

    lot = Lot.objects.select_for_update().get(pk=lot_id)
    mutation = build_mutation(lot)
    lot = apply_mutation(lot, mutation, aggregate, today)

    notify_stock_changed(product_id, mutation.transaction_type)
    return lot


def mutate_lot(lot_id, build_mutation, *, today: date | None = None) -> Lot:
    """
    Run one locked mutation of a single lot.

    build_mutation(locked_lot) -> LotMutation is called after the locks are
    held, so it can validate against current state.
    """
    try:
        lot_id = int(lot_id)
    except (TypeError, ValueError):
        raise LotNotFound(lot_id) from None

    return run_in_unit(_mutate_unit, lot_id, build_mutation, today)


def update_lot(lot_id, mutation: LotMutation, *, today: date | None = None) -> Lot:
    return mutate_lot(lot_id, lambda lot: mutation, today=today)


# ============================================================
# CREATE
# ============================================================

@atomic_unit
def create_lot(
    product_id,
    quantity,
    expiry_date=None,
    *,
    manufacture_date=None,
    cost_per_unit=None,
    supplier: str = "",
    supplier_reference: str = "",
    notes: str = "",
    batch_number: str | None = None,
    actor: str = "",
) -> Lot:
    """
    Receive stock as a new lot.

    Rejects unknown/inactive products, non-positive quantity, negative cost,
    an expiry already in the past and an expiry before manufacture.
    """
    product = directory.require_active_product(product_id)
    qty = to_positive_qty(quantity)
    cost = to_cost(cost_per_unit)
    expiry = to_date(expiry_date, field="expiry_date")
    manufactured = to_date(manufacture_date, field="manufacture_date")

    today = timezone.localdate()
    if expiry is not None and expiry < today:
        raise ValidationError({"expiry_date": "expiry_date is already in the past"})
    if expiry is not None and manufactured is not None and expiry < manufactured:
        raise ValidationError({"expiry_date": "expiry_date cannot be before manufacture_date"})

    aggregate = aggregates.lock_aggregate(product.id)

    def _insert(number: str) -> Lot:
        lot = Lot(
            product=product,
            batch_number=number,
            quantity=qty,
            original_quantity=qty,
            reserved_quantity=0,
            cost_per_unit=cost,
            expiry_date=expiry,
            manufacture_date=manufactured,
            supplier=(supplier or "").strip(),
            supplier_reference=(supplier_reference or "").strip(),
            notes=notes or "",
        )
        lot.status = lot.derive_status(today, quarantined=False)
        lot.save()
        return lot

    explicit = (batch_number or "").strip()
    if explicit:
        try:
            with transaction.atomic():
                lot = _insert(explicit)
        except IntegrityError as exc:
            raise ValidationError({"batch_number": "batch_number already exists"}) from exc
    else:
        lot = insert_with_batch_number(_insert, on_date=today)

    ledger.write_entry(
        lot=lot,
        transaction_type=LedgerEntry.TransactionType.LOT_CREATED,
        quantity_before=0,
        quantity_after=qty,
        reason="Lot received",
        actor=actor,
        reference_id=lot.batch_number,
        reference_type="lot",
    )
    aggregates.apply_delta(aggregate, lot.aggregate_contribution)

    logger.info(
        "Lot created",
        extra={
            "product_id": str(product.id),
            "lot_id": lot.id,
            "batch_number": lot.batch_number,
            "quantity": qty,
        },
    )
    notify_stock_changed(product.id, LedgerEntry.TransactionType.LOT_CREATED)
    return lot
