# inventory/services/allocator.py

"""
FEFO ALLOCATOR

Purpose:
- Fulfill a quantity of a product from one or more lots, earliest expiry
  first (no-expiry lots last), then oldest lot, then lowest id.
- Integer-only quantities.

Rules:
- Availability = sum(quantity - reserved_quantity) over ACTIVE lots that are
  not past expiry. Short availability raises InsufficientStock with nothing
  mutated.
- One `sale` ledger entry per touched lot, tagged with the caller's reference.
- If the eligible lots cannot cover a quantity the availability check
  accepted, that is a ConsistencyFault: logged CRITICAL, full rollback,
  never retried.
- Idempotent per (product, reference): a replay returns the original lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import F, Q, Sum
from django.utils import timezone

from inventory.models import Fulfillment, LedgerEntry, Lot
from inventory.signals import notify_stock_changed
from products.services import directory

from . import aggregates
from .exceptions import ConsistencyFault, InsufficientStock
from .lot_store import FEFO_ORDER, LotMutation, apply_mutation, expire_stale_lots
from .transactions import run_in_unit
from .validation import require_text, to_positive_qty

logger = logging.getLogger("inventory.allocator")

REFERENCE_TYPE = "fulfillment"


@dataclass(frozen=True)
class AllocationLine:
    lot_id: int
    batch_number: str
    quantity: int
    unit_cost: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class FulfillmentResult:
    product_id: object
    reference: str
    quantity: int
    lines: tuple = field(default_factory=tuple)
    replayed: bool = False

    @property
    def total_cost(self) -> Decimal:
        return sum(
            (line.unit_cost * Decimal(line.quantity) for line in self.lines),
            Decimal("0.00"),
        )


# ============================================================
# ELIGIBILITY
# ============================================================

def eligible_lots_queryset(product_id, today: date):
    return (
        Lot.objects.filter(
            product_id=product_id,
            status=Lot.Status.ACTIVE,
            quantity__gt=F("reserved_quantity"),
        )
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=today))
        .order_by(*FEFO_ORDER)
    )


def available_quantity(product_id, today: date | None = None) -> int:
    today = today or timezone.localdate()
    total = (
        Lot.objects.filter(product_id=product_id, status=Lot.Status.ACTIVE)
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=today))
        .aggregate(total=Sum(F("quantity") - F("reserved_quantity")))
        .get("total")
    )
    return int(total or 0)


# ============================================================
# FULFILLMENT
# ============================================================

def _replay(fulfillment: Fulfillment) -> FulfillmentResult:
    entries = (
        LedgerEntry.objects.filter(
            product_id=fulfillment.product_id,
            reference_id=fulfillment.reference,
            reference_type=REFERENCE_TYPE,
            transaction_type=LedgerEntry.TransactionType.SALE,
        )
        .select_related("lot")
        .order_by("id")
    )
    lines = tuple(
        AllocationLine(
            lot_id=entry.lot_id,
            batch_number=entry.lot.batch_number,
            quantity=-int(entry.quantity_change),
            unit_cost=entry.unit_cost_snapshot,
        )
        for entry in entries
    )
    return FulfillmentResult(
        product_id=fulfillment.product_id,
        reference=fulfillment.reference,
        quantity=int(fulfillment.quantity),
        lines=lines,
        replayed=True,
    )


def _fulfill_unit(product_id, qty: int, reference: str, actor: str) -> FulfillmentResult:
    today = timezone.localdate()
    aggregate = aggregates.lock_aggregate(product_id)

    existing = Fulfillment.objects.filter(product_id=product_id, reference=reference).first()
    if existing is not None:
        if int(existing.quantity) != qty:
            raise ValidationError(
                {
                    "reference": (
                        f"Reference {reference} was already fulfilled for "
                        f"{existing.quantity} units"
                    )
                }
            )
        return _replay(existing)

    expire_stale_lots(product_id, aggregate, today)

    available = available_quantity(product_id, today)
    if available < qty:
        raise InsufficientStock(available=available, requested=qty)

    lots = list(eligible_lots_queryset(product_id, today).select_for_update())

    remaining = qty
    lines = []
    for lot in lots:
        if remaining <= 0:
            break

        take = min(remaining, lot.available_quantity)
        if take <= 0:
            continue

        apply_mutation(
            lot,
            LotMutation(
                quantity=int(lot.quantity) - take,
                transaction_type=LedgerEntry.TransactionType.SALE,
                reason=f"Fulfillment {reference}",
                actor=actor,
                reference_id=reference,
                reference_type=REFERENCE_TYPE,
            ),
            aggregate,
            today,
        )
        lines.append(
            AllocationLine(
                lot_id=lot.id,
                batch_number=lot.batch_number,
                quantity=take,
                unit_cost=lot.cost_per_unit,
            )
        )
        remaining -= take

    if remaining > 0:
        logger.critical(
            "Eligible lots exhausted before fulfillment completed",
            extra={
                "product_id": str(product_id),
                "reference": reference,
                "requested": qty,
                "available": available,
                "shortfall": remaining,
            },
        )
        raise ConsistencyFault(
            f"Lots for product {product_id} could not cover {qty} units "
            f"although {available} were reported available"
        )

    Fulfillment.objects.create(
        product_id=product_id,
        reference=reference,
        quantity=qty,
        actor=actor,
    )

    notify_stock_changed(product_id, LedgerEntry.TransactionType.SALE)
    return FulfillmentResult(
        product_id=product_id,
        reference=reference,
        quantity=qty,
        lines=tuple(lines),
    )


def fulfill(product_id, quantity, reference: str, actor: str = "") -> FulfillmentResult:
    """
    Deduct `quantity` units of a product FEFO-first.

    Raises:
    - ValidationError: unknown or inactive product, bad quantity, missing reference,
      reference reused with a different quantity
    - InsufficientStock: not enough available units (nothing mutated)
    - ConsistencyFault: lot data contradicts the availability check
    """
    directory.require_active_product(product_id)

    qty = to_positive_qty(quantity)
    reference = require_text(reference, field="reference")

    result = run_in_unit(_fulfill_unit, product_id, qty, reference, actor or "")

    if not result.replayed:
        logger.info(
            "Fulfillment completed",
            extra={
                "product_id": str(product_id),
                "reference": reference,
                "quantity": qty,
                "lots": [line.lot_id for line in result.lines],
            },
        )
    return result
