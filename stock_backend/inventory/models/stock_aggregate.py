# inventory/models/stock_aggregate.py

"""
STOCK AGGREGATE (PER-PRODUCT MATERIALIZED TOTAL)

total == sum(quantity) over the product's ACTIVE lots.

The row doubles as the per-product lock: every mutating unit of work
selects it FOR UPDATE before touching any lot.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from products.models import Product


class StockAggregate(models.Model):
    product = models.OneToOneField(
        Product,
        on_delete=models.PROTECT,
        primary_key=True,
        related_name="stock_aggregate",
    )

    total = models.BigIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)
    reconciled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(total__gte=0),
                name="chk_stock_aggregate_total_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.product_id}: {self.total}"
