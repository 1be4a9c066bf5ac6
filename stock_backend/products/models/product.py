# products/models/product.py

import uuid

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a stocked product (directory entry).

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in inventory.Lot
    - The fast total lives in inventory.StockAggregate
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    low_stock_threshold = models.PositiveIntegerField(default=10)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if not (self.sku or "").strip():
            raise ValidationError({"sku": "sku is required"})

        if not (self.name or "").strip():
            raise ValidationError({"name": "name is required"})
