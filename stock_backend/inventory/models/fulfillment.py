# inventory/models/fulfillment.py

"""
FULFILLMENT (IDEMPOTENCY RECORD)

One row per (product, reference) that was successfully fulfilled.
The lines themselves live in the ledger as `sale` entries carrying the
same reference_id.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from products.models import Product


class Fulfillment(models.Model):
    id = models.BigAutoField(primary_key=True)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="fulfillments",
    )
    reference = models.CharField(max_length=128)
    quantity = models.PositiveIntegerField()
    actor = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "reference"],
                name="uniq_fulfillment_product_reference",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_fulfillment_qty_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.reference} x{self.quantity}"
