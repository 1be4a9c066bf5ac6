# inventory/services/returns.py

"""
FULFILLMENT RETURNS

Restore stock to the lots a fulfillment consumed.

Rules:
- Partial returns are allowed.
- Ceilings per lot: returned total can never exceed what was taken from it
  (sum of `sale` entries minus `return` entries for the reference).
- Units go back to the most recently consumed lot first.
- `return` ledger entries carry the fulfillment reference.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from django.core.exceptions import ValidationError
from django.utils import timezone

from inventory.models import Fulfillment, LedgerEntry, Lot
from inventory.signals import notify_stock_changed
from products.services import directory

from . import aggregates
from .allocator import REFERENCE_TYPE, AllocationLine
from .lot_store import LotMutation, apply_mutation, expire_stale_lots
from .transactions import run_in_unit
from .validation import require_text, to_positive_qty

logger = logging.getLogger("inventory.returns")


def _returnable_by_lot(product_id, reference: str) -> dict[int, int]:
    """{lot_id: units still returnable}, ordered by last consumption first."""
    taken = defaultdict(int)
    order = []

    sales = LedgerEntry.objects.filter(
        product_id=product_id,
        reference_id=reference,
        reference_type=REFERENCE_TYPE,
        transaction_type=LedgerEntry.TransactionType.SALE,
    ).order_by("-id")
    for entry in sales:
        if entry.lot_id not in taken:
            order.append(entry.lot_id)
        taken[entry.lot_id] += -int(entry.quantity_change)

    returned = LedgerEntry.objects.filter(
        product_id=product_id,
        reference_id=reference,
        transaction_type=LedgerEntry.TransactionType.RETURN,
    )
    for entry in returned:
        taken[entry.lot_id] -= int(entry.quantity_change)

    return {lot_id: taken[lot_id] for lot_id in order if taken[lot_id] > 0}


def _return_unit(product_id, reference: str, quantity, reason: str, actor: str):
    today = timezone.localdate()
    aggregate = aggregates.lock_aggregate(product_id)

    if not Fulfillment.objects.filter(product_id=product_id, reference=reference).exists():
        raise ValidationError({"reference": f"No fulfillment {reference} for this product"})

    expire_stale_lots(product_id, aggregate, today)

    returnable = _returnable_by_lot(product_id, reference)
    total_returnable = sum(returnable.values())
    if total_returnable <= 0:
        raise ValidationError({"reference": f"Nothing left to return for {reference}"})

    qty = total_returnable if quantity is None else quantity
    if qty > total_returnable:
        raise ValidationError(
            {"quantity": f"Only {total_returnable} units of {reference} can be returned"}
        )

    locked = {
        lot.id: lot
        for lot in Lot.objects.select_for_update().filter(id__in=list(returnable)).order_by("id")
    }

    remaining = qty
    lines = []
    for lot_id, ceiling in returnable.items():
        if remaining <= 0:
            break

        give = min(remaining, ceiling)
        lot = apply_mutation(
            locked[lot_id],
            LotMutation(
                quantity=int(locked[lot_id].quantity) + give,
                transaction_type=LedgerEntry.TransactionType.RETURN,
                reason=reason or f"Return of {reference}",
                actor=actor,
                reference_id=reference,
                reference_type=f"{REFERENCE_TYPE}_return",
            ),
            aggregate,
            today,
        )
        lines.append(
            AllocationLine(
                lot_id=lot.id,
                batch_number=lot.batch_number,
                quantity=give,
                unit_cost=lot.cost_per_unit,
            )
        )
        remaining -= give

    notify_stock_changed(product_id, LedgerEntry.TransactionType.RETURN)
    return lines


def return_fulfillment(
    product_id,
    reference: str,
    quantity=None,
    reason: str = "",
    actor: str = "",
) -> list[AllocationLine]:
    """
    Return units of a previous fulfillment to the lots they came from.
    quantity=None returns everything still outstanding.
    """
    if not directory.exists(product_id):
        raise ValidationError({"product_id": "Unknown product"})

    reference = require_text(reference, field="reference")
    qty = None if quantity is None or quantity == "" else to_positive_qty(quantity)

    lines = run_in_unit(_return_unit, product_id, reference, qty, (reason or "").strip(), actor or "")

    logger.info(
        "Fulfillment returned",
        extra={
            "product_id": str(product_id),
            "reference": reference,
            "quantity": sum(line.quantity for line in lines),
        },
    )
    return lines
