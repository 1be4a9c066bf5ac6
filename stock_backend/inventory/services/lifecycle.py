# inventory/services/lifecycle.py

"""
LOT LIFECYCLE SERVICE

Status rule (re-derived on every mutation):
- quantity == 0            -> depleted
- manually quarantined     -> quarantined
- expiry_date < today      -> expired
- otherwise                -> active

Operations here are thin, validated wrappers over lot_store.mutate_lot():
- sweep_expired()          scheduled job; one unit per product
- adjust_quantity()        manual correction / stock count / damage
- quarantine_lot() / release_quarantine()
- reserve() / release_reservation()   (no ledger entry; quantity unchanged)
"""

from __future__ import annotations

import logging
from datetime import date

from django.core.exceptions import ValidationError
from django.utils import timezone

from inventory.models import LedgerEntry, Lot
from inventory.signals import notify_stock_changed

from . import aggregates
from .exceptions import InsufficientStock
from .lot_store import LotMutation, expire_stale_lots, mutate_lot
from .transactions import run_in_unit
from .validation import require_text, to_int_qty, to_positive_qty

logger = logging.getLogger("inventory.lifecycle")

ADJUSTMENT_TYPES = {
    LedgerEntry.TransactionType.ADJUSTMENT,
    LedgerEntry.TransactionType.COUNT,
    LedgerEntry.TransactionType.DAMAGED,
}


# ============================================================
# EXPIRY SWEEP
# ============================================================

def _sweep_product(product_id, today: date) -> int:
    aggregate = aggregates.lock_aggregate(product_id)
    count = expire_stale_lots(product_id, aggregate, today)
    if count:
        notify_stock_changed(product_id, LedgerEntry.TransactionType.EXPIRY)
    return count


def sweep_expired(today: date | None = None) -> int:
    """
    Transition every ACTIVE lot with expiry_date < today to EXPIRED.

    Returns the number of lots transitioned. Allocation never depends on
    this having run; it filters by expiry_date itself.
    """
    today = today or timezone.localdate()

    product_ids = list(
        Lot.objects.filter(status=Lot.Status.ACTIVE, expiry_date__lt=today)
        .values_list("product_id", flat=True)
        .distinct()
    )

    swept = 0
    for product_id in product_ids:
        swept += run_in_unit(_sweep_product, product_id, today)

    logger.info(
        "Expiry sweep finished",
        extra={"date": today.isoformat(), "products": len(product_ids), "lots": swept},
    )
    return swept


# ============================================================
# MANUAL ADJUSTMENT
# ============================================================

def adjust_quantity(
    lot_id,
    new_quantity,
    reason: str,
    actor: str = "",
    *,
    transaction_type: str = LedgerEntry.TransactionType.ADJUSTMENT,
) -> Lot:
    """
    Set a lot's quantity to `new_quantity` with an audited ledger entry.

    transaction_type:
      adjustment -> manual correction (must change the quantity)
      count      -> stock-take result (a confirming count is still recorded)
      damaged    -> removal of damaged units (must reduce the quantity)
    """
    if transaction_type not in ADJUSTMENT_TYPES:
        raise ValidationError({"transaction_type": "Must be adjustment, count or damaged"})

    target = to_int_qty(new_quantity, field="new_quantity")
    if target < 0:
        raise ValidationError({"new_quantity": "new_quantity cannot be negative"})

    reason = require_text(reason, field="reason")

    def build(lot: Lot) -> LotMutation:
        current = int(lot.quantity)

        if target > int(lot.original_quantity):
            raise ValidationError(
                {"new_quantity": f"new_quantity cannot exceed original_quantity ({lot.original_quantity})"}
            )
        if target < int(lot.reserved_quantity):
            raise ValidationError(
                {"new_quantity": f"new_quantity cannot drop below reserved_quantity ({lot.reserved_quantity})"}
            )
        if transaction_type == LedgerEntry.TransactionType.ADJUSTMENT and target == current:
            raise ValidationError({"new_quantity": "Adjustment does not change the quantity"})
        if transaction_type == LedgerEntry.TransactionType.DAMAGED and target >= current:
            raise ValidationError({"new_quantity": "Damage must reduce the quantity"})

        return LotMutation(
            quantity=target,
            transaction_type=transaction_type,
            reason=reason,
            actor=actor,
            record_unchanged=transaction_type == LedgerEntry.TransactionType.COUNT,
        )

    lot = mutate_lot(lot_id, build)
    logger.info(
        "Lot quantity adjusted",
        extra={
            "lot_id": lot.id,
            "quantity": lot.quantity,
            "transaction_type": str(transaction_type),
            "actor": actor,
        },
    )
    return lot


def record_damage(lot_id, quantity, reason: str, actor: str = "") -> Lot:
    """Remove `quantity` damaged units from a lot."""
    qty = to_positive_qty(quantity)
    reason = require_text(reason, field="reason")

    def build(lot: Lot) -> LotMutation:
        if qty > lot.available_quantity:
            raise ValidationError(
                {"quantity": f"Only {lot.available_quantity} unreserved units in lot {lot.batch_number}"}
            )
        return LotMutation(
            quantity=int(lot.quantity) - qty,
            transaction_type=LedgerEntry.TransactionType.DAMAGED,
            reason=reason,
            actor=actor,
        )

    return mutate_lot(lot_id, build)


# ============================================================
# QUARANTINE
# ============================================================

def quarantine_lot(lot_id, reason: str, actor: str = "") -> Lot:
    reason = require_text(reason, field="reason")

    def build(lot: Lot) -> LotMutation:
        if lot.status == Lot.Status.QUARANTINED:
            raise ValidationError("Lot is already quarantined")
        if lot.status == Lot.Status.DEPLETED:
            raise ValidationError("A depleted lot cannot be quarantined")
        return LotMutation(
            quarantined=True,
            reason=f"Quarantined: {reason}",
            actor=actor,
        )

    lot = mutate_lot(lot_id, build)
    logger.warning(
        "Lot quarantined",
        extra={"lot_id": lot.id, "batch_number": lot.batch_number, "actor": actor},
    )
    return lot


def release_quarantine(lot_id, reason: str, actor: str = "") -> Lot:
    reason = require_text(reason, field="reason")

    def build(lot: Lot) -> LotMutation:
        if lot.status != Lot.Status.QUARANTINED:
            raise ValidationError("Lot is not quarantined")
        return LotMutation(
            quarantined=False,
            reason=f"Released from quarantine: {reason}",
            actor=actor,
        )

    return mutate_lot(lot_id, build)


# ============================================================
# RESERVATIONS
# ============================================================

def reserve(lot_id, quantity, actor: str = "") -> Lot:
    """Hold units of an active lot for a pending transaction."""
    qty = to_positive_qty(quantity)

    def build(lot: Lot) -> LotMutation:
        if lot.status != Lot.Status.ACTIVE:
            raise ValidationError(f"Cannot reserve from a {lot.status} lot")
        if qty > lot.available_quantity:
            raise InsufficientStock(available=lot.available_quantity, requested=qty)
        return LotMutation(
            reserved_quantity=int(lot.reserved_quantity) + qty,
            reason="Reserved",
            actor=actor,
        )

    return mutate_lot(lot_id, build)


def release_reservation(lot_id, quantity, actor: str = "") -> Lot:
    qty = to_positive_qty(quantity)

    def build(lot: Lot) -> LotMutation:
        if qty > int(lot.reserved_quantity):
            raise ValidationError(
                {"quantity": f"Only {lot.reserved_quantity} units are reserved"}
            )
        return LotMutation(
            reserved_quantity=int(lot.reserved_quantity) - qty,
            reason="Reservation released",
            actor=actor,
        )

    return mutate_lot(lot_id, build)
