# inventory/admin.py
"""
=====================================================
PATH: inventory/admin.py
=====================================================

Admin rules (audit-safe):
- Lots, ledger entries, aggregates and fulfillments are READ-ONLY here.
- Stock changes go through inventory.services so every change carries its
  ledger entry and aggregate delta.
"""

from __future__ import annotations

from django.contrib import admin
from django.utils import timezone

from inventory.models import Fulfillment, LedgerEntry, Lot, StockAggregate


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Lot)
class LotAdmin(ReadOnlyAdmin):
    list_display = (
        "batch_number",
        "product",
        "quantity",
        "original_quantity",
        "reserved_quantity",
        "expiry_date",
        "expiry_status",
        "status",
    )
    list_filter = ("status", "expiry_date")
    search_fields = ("batch_number", "supplier_reference", "product__name", "product__sku")
    list_select_related = ("product",)

    @admin.display(description="Expiry")
    def expiry_status(self, obj):
        if obj.expiry_date is None:
            return "No expiry"
        days = (obj.expiry_date - timezone.localdate()).days
        if days < 0:
            return "Expired"
        if days <= 30:
            return f"{days} days left"
        return "OK"


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "created_at",
        "product",
        "lot",
        "transaction_type",
        "quantity_before",
        "quantity_change",
        "quantity_after",
        "reference_id",
        "actor",
    )
    list_filter = ("transaction_type",)
    search_fields = ("reference_id", "lot__batch_number", "product__name")
    list_select_related = ("product", "lot")


@admin.register(StockAggregate)
class StockAggregateAdmin(ReadOnlyAdmin):
    list_display = ("product", "total", "updated_at", "reconciled_at")
    list_select_related = ("product",)


@admin.register(Fulfillment)
class FulfillmentAdmin(ReadOnlyAdmin):
    list_display = ("reference", "product", "quantity", "actor", "created_at")
    search_fields = ("reference",)
    list_select_related = ("product",)
