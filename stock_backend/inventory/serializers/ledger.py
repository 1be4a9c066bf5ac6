# inventory/serializers/ledger.py

from __future__ import annotations

from rest_framework import serializers

from inventory.models import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)
    lot_id = serializers.IntegerField(read_only=True)
    batch_number = serializers.CharField(source="lot.batch_number", read_only=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "product_id",
            "lot_id",
            "batch_number",
            "transaction_type",
            "quantity_before",
            "quantity_change",
            "quantity_after",
            "unit_cost_snapshot",
            "reference_id",
            "reference_type",
            "reason",
            "actor",
            "created_at",
        ]
        read_only_fields = fields


class StockLevelSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    total = serializers.IntegerField(help_text="Cached sum of ACTIVE lot quantities")
    available = serializers.IntegerField(help_text="Allocatable units (unexpired, unreserved)")
    reconciled_at = serializers.DateTimeField(allow_null=True)
