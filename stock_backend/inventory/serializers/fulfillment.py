# inventory/serializers/fulfillment.py

from __future__ import annotations

from rest_framework import serializers


class FulfillmentRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    reference = serializers.CharField(max_length=128)


class ReturnRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    reference = serializers.CharField(max_length=128)
    quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AllocationLineSerializer(serializers.Serializer):
    lot_id = serializers.IntegerField()
    batch_number = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2)


class FulfillmentResultSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    reference = serializers.CharField()
    quantity = serializers.IntegerField()
    replayed = serializers.BooleanField()
    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2)
    lines = AllocationLineSerializer(many=True)
