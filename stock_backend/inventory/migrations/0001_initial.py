"""
======================================================
PATH: inventory/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Lot / LedgerEntry / StockAggregate / Fulfillment

Purpose:
- Lot-level inventory with DB-enforced quantity invariants.
- Append-only ledger with quantity_after = quantity_before + quantity_change.
- Per-product aggregate row (also the per-product lock).
- Fulfillment idempotency record, unique per (product, reference).
"""

from __future__ import annotations

from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Lot",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("batch_number", models.CharField(max_length=64, unique=True)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        help_text="Units currently on hand (service-managed only)"
                    ),
                ),
                (
                    "original_quantity",
                    models.PositiveIntegerField(help_text="Units received (immutable)"),
                ),
                (
                    "reserved_quantity",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Units held for pending transactions",
                    ),
                ),
                (
                    "cost_per_unit",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                    ),
                ),
                ("expiry_date", models.DateField(null=True, blank=True)),
                ("manufacture_date", models.DateField(null=True, blank=True)),
                ("supplier", models.CharField(max_length=255, blank=True, default="")),
                (
                    "supplier_reference",
                    models.CharField(
                        max_length=128,
                        blank=True,
                        default="",
                        help_text="Supplier's own batch id",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("active", "Active"),
                            ("expired", "Expired"),
                            ("depleted", "Depleted"),
                            ("quarantined", "Quarantined"),
                        ],
                        default="active",
                        db_index=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lots",
                    ),
                ),
            ],
            options={
                "ordering": [
                    models.F("expiry_date").asc(nulls_last=True),
                    "created_at",
                    "id",
                ],
                "indexes": [
                    models.Index(
                        fields=["product", "status", "expiry_date"],
                        name="lot_product_status_exp_idx",
                    ),
                    models.Index(fields=["expiry_date"], name="lot_expiry_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(original_quantity__gt=0),
                        name="chk_lot_original_qty_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity__lte=models.F("original_quantity")),
                        name="chk_lot_qty_lte_original",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(reserved_quantity__lte=models.F("quantity")),
                        name="chk_lot_reserved_lte_qty",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(cost_per_unit__gte=0),
                        name="chk_lot_cost_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "transaction_type",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("lot_created", "Lot Created"),
                            ("sale", "Sale"),
                            ("adjustment", "Adjustment"),
                            ("transfer", "Transfer"),
                            ("expiry", "Expiry"),
                            ("return", "Return"),
                            ("damaged", "Damaged"),
                            ("count", "Stock Count"),
                        ],
                    ),
                ),
                ("quantity_before", models.PositiveIntegerField()),
                ("quantity_change", models.IntegerField()),
                ("quantity_after", models.PositiveIntegerField()),
                (
                    "unit_cost_snapshot",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Lot cost per unit at event time (immutable).",
                    ),
                ),
                (
                    "reference_id",
                    models.CharField(max_length=128, blank=True, default="", db_index=True),
                ),
                ("reference_type", models.CharField(max_length=64, blank=True, default="")),
                ("reason", models.TextField(blank=True, default="")),
                ("actor", models.CharField(max_length=150, blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "lot",
                    models.ForeignKey(
                        to="inventory.lot",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "verbose_name_plural": "ledger entries",
                "indexes": [
                    models.Index(
                        fields=["product", "created_at"],
                        name="ledger_product_created_idx",
                    ),
                    models.Index(fields=["lot", "created_at"], name="ledger_lot_created_idx"),
                    models.Index(fields=["transaction_type"], name="ledger_type_idx"),
                    models.Index(fields=["created_at"], name="ledger_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            quantity_after=models.F("quantity_before") + models.F("quantity_change")
                        ),
                        name="chk_ledger_after_eq_before_plus_change",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockAggregate",
            fields=[
                (
                    "product",
                    models.OneToOneField(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        primary_key=True,
                        serialize=False,
                        related_name="stock_aggregate",
                    ),
                ),
                ("total", models.BigIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("reconciled_at", models.DateTimeField(null=True, blank=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total__gte=0),
                        name="chk_stock_aggregate_total_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Fulfillment",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("reference", models.CharField(max_length=128)),
                ("quantity", models.PositiveIntegerField()),
                ("actor", models.CharField(max_length=150, blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="fulfillments",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "reference"),
                        name="uniq_fulfillment_product_reference",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="chk_fulfillment_qty_gt_zero",
                    ),
                ],
            },
        ),
    ]
