# inventory/services/ledger.py

"""
LEDGER SERVICE

write_entry():
- must be called inside the caller's transaction (so a ledger failure rolls
  back the paired lot mutation)
- validates quantity_after == quantity_before + quantity_change
- never touches existing rows

query_entries():
- read-only iterator
- since_id cursor for notification consumers (strictly newer, ascending)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import connection
from django.db.transaction import TransactionManagementError

from inventory.models import LedgerEntry, Lot


def write_entry(
    *,
    lot: Lot,
    transaction_type: str,
    quantity_before: int,
    quantity_after: int,
    reason: str = "",
    actor: str = "",
    reference_id: str = "",
    reference_type: str = "",
    unit_cost_snapshot=None,
) -> LedgerEntry:
    if not connection.in_atomic_block:
        raise TransactionManagementError(
            "Ledger entries must be written inside the unit of work that mutates the lot."
        )

    if transaction_type not in LedgerEntry.TransactionType.values:
        raise ValidationError({"transaction_type": f"Unknown transaction type: {transaction_type}"})

    before = int(quantity_before)
    after = int(quantity_after)

    cost = unit_cost_snapshot if unit_cost_snapshot is not None else lot.cost_per_unit

    entry = LedgerEntry(
        product_id=lot.product_id,
        lot=lot,
        transaction_type=transaction_type,
        quantity_before=before,
        quantity_change=after - before,
        quantity_after=after,
        unit_cost_snapshot=Decimal(str(cost if cost is not None else "0.00")),
        reference_id=str(reference_id or ""),
        reference_type=str(reference_type or ""),
        reason=str(reason or ""),
        actor=str(actor or ""),
    )
    entry.save()
    return entry


def entries_queryset(
    *,
    product_id=None,
    lot_id=None,
    transaction_type: str | None = None,
    reference_id: str | None = None,
    created_after=None,
    created_before=None,
    since_id: int | None = None,
):
    qs = LedgerEntry.objects.all()

    if product_id is not None:
        qs = qs.filter(product_id=product_id)
    if lot_id is not None:
        qs = qs.filter(lot_id=lot_id)
    if transaction_type:
        qs = qs.filter(transaction_type=transaction_type)
    if reference_id:
        qs = qs.filter(reference_id=reference_id)
    if created_after is not None:
        qs = qs.filter(created_at__gte=created_after)
    if created_before is not None:
        qs = qs.filter(created_at__lt=created_before)
    if since_id is not None:
        qs = qs.filter(id__gt=int(since_id))

    return qs.order_by("id")


def query_entries(**filters):
    """Stream matching ledger entries in id order."""
    return entries_queryset(**filters).iterator(chunk_size=500)
