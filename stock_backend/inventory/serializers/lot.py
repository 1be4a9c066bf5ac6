# inventory/serializers/lot.py
"""
======================================================
PATH: inventory/serializers/lot.py
======================================================
LOT SERIALIZERS

Purpose:
- Shape Lot output for the API.
- Validate request bodies for lot create + controlled actions.

IMPORTANT:
- Quantity / status / reservation are never writable through a model
  serializer. Every change goes through inventory.services.
"""

from __future__ import annotations

from rest_framework import serializers

from inventory.models import LedgerEntry, Lot


class LotSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    available_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Lot
        fields = [
            "id",
            "product_id",
            "product_name",
            "batch_number",
            "quantity",
            "original_quantity",
            "reserved_quantity",
            "available_quantity",
            "cost_per_unit",
            "expiry_date",
            "manufacture_date",
            "supplier",
            "supplier_reference",
            "notes",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class LotCreateSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    manufacture_date = serializers.DateField(required=False, allow_null=True)
    cost_per_unit = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    supplier = serializers.CharField(required=False, allow_blank=True, default="")
    supplier_reference = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    batch_number = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Optional; generated (e.g. BT101826-1) when missing.",
    )


class LotAdjustSerializer(serializers.Serializer):
    ADJUSTMENT_CHOICES = [
        LedgerEntry.TransactionType.ADJUSTMENT,
        LedgerEntry.TransactionType.COUNT,
        LedgerEntry.TransactionType.DAMAGED,
    ]

    new_quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField()
    transaction_type = serializers.ChoiceField(
        choices=ADJUSTMENT_CHOICES,
        default=LedgerEntry.TransactionType.ADJUSTMENT,
    )


class LotReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class LotQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
