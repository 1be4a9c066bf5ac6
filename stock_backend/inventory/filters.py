# inventory/filters.py

"""
Query filters for the inventory API (django-filter).

since_id is the notification cursor: strictly newer entries, ascending.
"""

from __future__ import annotations

import django_filters

from inventory.models import LedgerEntry, Lot


class LedgerEntryFilter(django_filters.FilterSet):
    product_id = django_filters.UUIDFilter(field_name="product_id")
    lot_id = django_filters.NumberFilter(field_name="lot_id")
    transaction_type = django_filters.ChoiceFilter(choices=LedgerEntry.TransactionType.choices)
    reference_id = django_filters.CharFilter(field_name="reference_id")
    since_id = django_filters.NumberFilter(field_name="id", lookup_expr="gt")
    created_after = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lt")

    class Meta:
        model = LedgerEntry
        fields = [
            "product_id",
            "lot_id",
            "transaction_type",
            "reference_id",
            "since_id",
            "created_after",
            "created_before",
        ]


class LotFilter(django_filters.FilterSet):
    product_id = django_filters.UUIDFilter(field_name="product_id")
    status = django_filters.ChoiceFilter(choices=Lot.Status.choices)
    expiring_after = django_filters.DateFilter(field_name="expiry_date", lookup_expr="gte")
    expiring_before = django_filters.DateFilter(field_name="expiry_date", lookup_expr="lte")

    class Meta:
        model = Lot
        fields = ["product_id", "status", "expiring_after", "expiring_before"]
