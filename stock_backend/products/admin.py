# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:
- Products are directory entries only.
- Stock is never edited here; lots are created through the inventory services.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "is_active", "low_stock_threshold", "stock_total")
    list_filter = ("is_active",)
    search_fields = ("name", "sku")
    ordering = ("name",)
    readonly_fields = ("created_at", "updated_at")

    @admin.display(description="Stock")
    def stock_total(self, obj):
        aggregate = getattr(obj, "stock_aggregate", None)
        return int(aggregate.total) if aggregate else 0
