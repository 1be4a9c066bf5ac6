# inventory/services/aggregates.py

"""
STOCK AGGREGATE SERVICE

- lock_aggregate(): the per-product lock; always taken before any lot
- apply_delta(): same-transaction delta update (never below zero)
- read_aggregate(): fast read of the cached total
- reconcile(): expire stale lots, recompute from lots, overwrite, warn on drift
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db.models import Sum
from django.utils import timezone

from inventory.models import Lot, StockAggregate
from inventory.signals import notify_stock_changed
from products.services import directory

from . import lot_store
from .exceptions import ConsistencyFault
from .transactions import run_in_unit

logger = logging.getLogger("inventory.aggregates")


def lock_aggregate(product_id) -> StockAggregate:
    StockAggregate.objects.get_or_create(product_id=product_id)
    return StockAggregate.objects.select_for_update().get(product_id=product_id)


def apply_delta(aggregate: StockAggregate, delta: int) -> StockAggregate:
    delta = int(delta)
    if delta == 0:
        return aggregate

    new_total = int(aggregate.total) + delta
    if new_total < 0:
        logger.critical(
            "Stock aggregate would go negative",
            extra={
                "product_id": str(aggregate.product_id),
                "total": int(aggregate.total),
                "delta": delta,
            },
        )
        raise ConsistencyFault(
            f"Aggregate for product {aggregate.product_id} would become {new_total}"
        )

    aggregate.total = new_total
    aggregate.save(update_fields=["total", "updated_at"])
    return aggregate


def read_aggregate(product_id) -> int:
    total = (
        StockAggregate.objects.filter(product_id=product_id)
        .values_list("total", flat=True)
        .first()
    )
    return int(total or 0)


def compute_total(product_id) -> int:
    """Ground truth: sum of quantity over the product's ACTIVE lots."""
    return int(
        Lot.objects.filter(product_id=product_id, status=Lot.Status.ACTIVE)
        .aggregate(total=Sum("quantity"))
        .get("total")
        or 0
    )


def _reconcile_unit(product_id) -> tuple[int, int]:
    aggregate = lock_aggregate(product_id)
    cached = int(aggregate.total)
    computed = compute_total(product_id)

    # Expire lots past their date against the recomputed base, so a drifted
    # cache cannot go negative. Expiry is not drift: report both sides net of it.
    aggregate.total = computed
    lot_store.expire_stale_lots(product_id, aggregate, timezone.localdate())
    expired_units = computed - int(aggregate.total)
    cached -= expired_units
    computed -= expired_units

    if cached != computed:
        logger.warning(
            "Stock aggregate drift corrected",
            extra={
                "product_id": str(product_id),
                "cached": cached,
                "computed": computed,
            },
        )
        notify_stock_changed(product_id, "reconcile")

    aggregate.total = computed
    aggregate.reconciled_at = timezone.now()
    aggregate.save(update_fields=["total", "reconciled_at", "updated_at"])
    return cached, computed


def reconcile_with_drift(product_id) -> tuple[int, int]:
    """Return (cached_before, computed) after overwriting the cached value."""
    if not directory.exists(product_id):
        raise ValidationError({"product_id": "Unknown product"})
    return run_in_unit(_reconcile_unit, product_id)


def reconcile(product_id) -> int:
    _, computed = reconcile_with_drift(product_id)
    return computed


def reconcile_all() -> dict:
    """
    Reconcile every product that has lots or an aggregate row.

    Returns {product_id: (cached, computed)} for products that drifted.
    """
    product_ids = set(Lot.objects.values_list("product_id", flat=True).distinct())
    product_ids |= set(StockAggregate.objects.values_list("product_id", flat=True))

    drifted = {}
    for product_id in sorted(product_ids, key=str):
        cached, computed = reconcile_with_drift(product_id)
        if cached != computed:
            drifted[product_id] = (cached, computed)

    return drifted
