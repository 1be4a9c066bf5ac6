# inventory/models/lot.py

"""
LOT (ONE PHYSICAL RECEIPT OF STOCK)

CANONICAL MODEL:
- Lot = one receipt of one product, with its own expiry and cost
- original_quantity is immutable after creation
- quantity / reserved_quantity / status are mutated ONLY via
  inventory.services.lot_store.apply_mutation
- status is derived on every mutation; QUARANTINED is the only manual status
- Lots are never deleted (ledger history references them)

Invariants (DB-enforced where possible):
- 0 <= reserved_quantity <= quantity <= original_quantity
- original_quantity > 0
- cost_per_unit >= 0
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from products.models import Product


class Lot(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        DEPLETED = "depleted", "Depleted"
        QUARANTINED = "quarantined", "Quarantined"

    id = models.BigAutoField(primary_key=True)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="lots",
    )

    # Globally unique, so unique within a product as well.
    batch_number = models.CharField(max_length=64, unique=True)

    quantity = models.PositiveIntegerField(
        help_text="Units currently on hand (service-managed only)",
    )
    original_quantity = models.PositiveIntegerField(
        help_text="Units received (immutable)",
    )
    reserved_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units held for pending transactions",
    )

    cost_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    expiry_date = models.DateField(null=True, blank=True)
    manufacture_date = models.DateField(null=True, blank=True)

    supplier = models.CharField(max_length=255, blank=True, default="")
    supplier_reference = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Supplier's own batch id",
    )
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = [F("expiry_date").asc(nulls_last=True), "created_at", "id"]
        indexes = [
            models.Index(fields=["product", "status", "expiry_date"], name="lot_product_status_exp_idx"),
            models.Index(fields=["expiry_date"], name="lot_expiry_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(original_quantity__gt=0),
                name="chk_lot_original_qty_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity__lte=F("original_quantity")),
                name="chk_lot_qty_lte_original",
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F("quantity")),
                name="chk_lot_reserved_lte_qty",
            ),
            models.CheckConstraint(
                condition=Q(cost_per_unit__gte=0),
                name="chk_lot_cost_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.batch_number} ({self.quantity}/{self.original_quantity})"

    # -------------------------------------------------
    # DERIVED STATE
    # -------------------------------------------------

    def derive_status(self, today, quarantined: bool | None = None) -> str:
        """
        Deterministic status rule.

        depleted beats everything; quarantine is sticky until released;
        otherwise expiry decides.
        """
        if quarantined is None:
            quarantined = self.status == self.Status.QUARANTINED

        if int(self.quantity or 0) == 0:
            return self.Status.DEPLETED
        if quarantined:
            return self.Status.QUARANTINED
        if self.expiry_date is not None and self.expiry_date < today:
            return self.Status.EXPIRED
        return self.Status.ACTIVE

    @property
    def available_quantity(self) -> int:
        return int(self.quantity or 0) - int(self.reserved_quantity or 0)

    @property
    def aggregate_contribution(self) -> int:
        """Units this lot adds to the product's stock aggregate."""
        return int(self.quantity or 0) if self.status == self.Status.ACTIVE else 0

    # -------------------------------------------------
    # VALIDATION
    # -------------------------------------------------

    def clean(self):
        if self.original_quantity is None or self.original_quantity <= 0:
            raise ValidationError(
                {"original_quantity": "original_quantity must be greater than zero"}
            )

        if self.quantity is None or self.quantity < 0:
            raise ValidationError({"quantity": "quantity cannot be negative"})

        if self.quantity > self.original_quantity:
            raise ValidationError(
                {"quantity": "quantity cannot exceed original_quantity"}
            )

        if self.reserved_quantity < 0 or self.reserved_quantity > self.quantity:
            raise ValidationError(
                {"reserved_quantity": "reserved_quantity must be between 0 and quantity"}
            )

        if self.cost_per_unit is None or Decimal(self.cost_per_unit) < Decimal("0.00"):
            raise ValidationError({"cost_per_unit": "cost_per_unit cannot be negative"})

        if (
            self.expiry_date is not None
            and self.manufacture_date is not None
            and self.expiry_date < self.manufacture_date
        ):
            raise ValidationError(
                {"expiry_date": "expiry_date cannot be before manufacture_date"}
            )

    # -------------------------------------------------
    # IMMUTABILITY
    # -------------------------------------------------

    def save(self, *args, **kwargs):
        if not self._state.adding:
            original = Lot.objects.only("original_quantity", "product_id").get(pk=self.pk)

            if self.original_quantity != original.original_quantity:
                raise ValidationError({"original_quantity": "original_quantity is immutable"})

            if self.product_id != original.product_id:
                raise ValidationError({"product": "product is immutable"})

        # Uniqueness is left to the database so batch-number collisions
        # surface as IntegrityError and can be retried.
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Lots are never deleted; deplete or quarantine instead.")
