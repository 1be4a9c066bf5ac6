# inventory/models/ledger_entry.py

"""
CANONICAL INVENTORY LEDGER

Immutable history of every quantity-affecting (or status-affecting) event
on a lot.

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity_after == quantity_before + quantity_change (DB check)
- unit_cost_snapshot copies the lot cost at event time
- Written only inside the same transaction as the lot mutation it records
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from products.models import Product

from .lot import Lot


class LedgerEntry(models.Model):
    class TransactionType(models.TextChoices):
        LOT_CREATED = "lot_created", "Lot Created"
        SALE = "sale", "Sale"
        ADJUSTMENT = "adjustment", "Adjustment"
        TRANSFER = "transfer", "Transfer"
        EXPIRY = "expiry", "Expiry"
        RETURN = "return", "Return"
        DAMAGED = "damaged", "Damaged"
        COUNT = "count", "Stock Count"

    id = models.BigAutoField(primary_key=True)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    lot = models.ForeignKey(
        Lot,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    transaction_type = models.CharField(
        max_length=16,
        choices=TransactionType.choices,
    )

    quantity_before = models.PositiveIntegerField()
    quantity_change = models.IntegerField()
    quantity_after = models.PositiveIntegerField()

    unit_cost_snapshot = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Lot cost per unit at event time (immutable).",
    )

    reference_id = models.CharField(max_length=128, blank=True, default="", db_index=True)
    reference_type = models.CharField(max_length=64, blank=True, default="")
    reason = models.TextField(blank=True, default="")
    actor = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["product", "created_at"], name="ledger_product_created_idx"),
            models.Index(fields=["lot", "created_at"], name="ledger_lot_created_idx"),
            models.Index(fields=["transaction_type"], name="ledger_type_idx"),
            models.Index(fields=["created_at"], name="ledger_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_after=F("quantity_before") + F("quantity_change")),
                name="chk_ledger_after_eq_before_plus_change",
            ),
        ]

    def clean(self):
        if self.quantity_before is None or self.quantity_before < 0:
            raise ValidationError({"quantity_before": "quantity_before cannot be negative"})

        if self.quantity_after is None or self.quantity_after < 0:
            raise ValidationError({"quantity_after": "quantity_after cannot be negative"})

        if self.quantity_change is None:
            raise ValidationError({"quantity_change": "quantity_change is required"})

        if self.quantity_after != self.quantity_before + self.quantity_change:
            raise ValidationError(
                "quantity_after must equal quantity_before + quantity_change"
            )

        if self.lot_id and self.product_id:
            lot_product_id = (
                Lot.objects.filter(pk=self.lot_id).values_list("product_id", flat=True).first()
            )
            if lot_product_id is not None and lot_product_id != self.product_id:
                raise ValidationError("Lot does not belong to product")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Ledger entries are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Ledger entries are immutable and cannot be deleted")

    @property
    def total_cost(self) -> Decimal:
        return (self.unit_cost_snapshot or Decimal("0.00")) * Decimal(abs(int(self.quantity_change or 0)))

    def __str__(self):
        return f"{self.lot_id} | {self.transaction_type} | {self.quantity_change:+d}"
