# inventory/views/stock.py

"""
STOCK LEVEL + LEDGER ENDPOINTS

GET  /api/inventory/stock/{product_id}/             cached aggregate + allocatable
POST /api/inventory/stock/{product_id}/reconcile/   recompute from lots
GET  /api/inventory/ledger/                         filterable, since_id cursor
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from inventory.filters import LedgerEntryFilter
from inventory.models import LedgerEntry, StockAggregate
from inventory.serializers import LedgerEntrySerializer, StockLevelSerializer
from inventory.services import aggregates, allocator
from permissions.roles import (
    CAP_AUDIT_RECONCILE,
    CAP_AUDIT_VIEW,
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
    HasCapability,
)
from products.services import directory

from .errors import HANDLED_ERRORS, inventory_error_response


def _stock_level(product_id) -> dict:
    reconciled_at = (
        StockAggregate.objects.filter(product_id=product_id)
        .values_list("reconciled_at", flat=True)
        .first()
    )
    return {
        "product_id": product_id,
        "total": aggregates.read_aggregate(product_id),
        "available": allocator.available_quantity(product_id),
        "reconciled_at": reconciled_at,
    }


class StockLevelView(APIView):
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
        CAP_INVENTORY_ADJUST,
        CAP_AUDIT_VIEW,
    }

    @extend_schema(responses={200: StockLevelSerializer})
    def get(self, request, product_id):
        if not directory.exists(product_id):
            return Response({"detail": "Unknown product"}, status=status.HTTP_404_NOT_FOUND)

        return Response(StockLevelSerializer(_stock_level(product_id)).data)


class StockReconcileView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_AUDIT_RECONCILE

    @extend_schema(request=None, responses={200: StockLevelSerializer})
    def post(self, request, product_id):
        try:
            cached, computed = aggregates.reconcile_with_drift(product_id)
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)

        data = StockLevelSerializer(_stock_level(product_id)).data
        data["drift"] = computed - cached
        return Response(data, status=status.HTTP_200_OK)


class LedgerEntryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Append-only ledger, read side.

    Notification consumers poll with ?since_id=<last seen id>.
    """

    serializer_class = LedgerEntrySerializer
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_AUDIT_VIEW}
    filter_backends = [DjangoFilterBackend]
    filterset_class = LedgerEntryFilter

    def get_queryset(self):
        return LedgerEntry.objects.select_related("lot").order_by("id")
