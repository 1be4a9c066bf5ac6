# inventory/views/lot.py

"""
LOT VIEWSET

Purpose:
- List / retrieve lots (FEFO order).
- Receive stock as a new lot.
- Controlled lot operations: adjust / damage / quarantine / release /
  reserve / release-reservation.

RULES:
- No PUT / PATCH / DELETE. Quantity and status are service-managed.
- Every write goes through inventory.services (one atomic unit each).
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.filters import LotFilter
from inventory.serializers import (
    LotAdjustSerializer,
    LotCreateSerializer,
    LotQuantitySerializer,
    LotReasonSerializer,
    LotSerializer,
)
from inventory.services import lifecycle, lot_store
from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_VIEW,
    CAP_POS_SELL,
    HasAnyCapability,
    HasCapability,
)

from .errors import HANDLED_ERRORS, inventory_error_response


def actor_for(request) -> str:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return ""
    return user.get_username()


class LotViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = LotSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = LotFilter

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        # IMPORTANT: reset per request to avoid state leaking between actions
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in {"list", "retrieve"}:
            self.required_any_capabilities = {
                CAP_INVENTORY_VIEW,
                CAP_INVENTORY_EDIT,
                CAP_INVENTORY_ADJUST,
            }
            return [IsAuthenticated(), HasAnyCapability()]

        if self.action == "create":
            self.required_capability = CAP_INVENTORY_EDIT
            return [IsAuthenticated(), HasCapability()]

        # Reservations hold stock for pending sales.
        if self.action in {"reserve", "release_reservation"}:
            self.required_any_capabilities = {CAP_INVENTORY_EDIT, CAP_POS_SELL}
            return [IsAuthenticated(), HasAnyCapability()]

        if self.action in {"adjust", "damage", "quarantine", "release"}:
            self.required_capability = CAP_INVENTORY_ADJUST
            return [IsAuthenticated(), HasCapability()]

        return [IsAuthenticated()]

    def get_queryset(self):
        return lot_store.lots_queryset()

    def get_object(self):
        return lot_store.get_lot(self.kwargs.get("pk"))

    def retrieve(self, request, *args, **kwargs):
        try:
            lot = self.get_object()
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)
        return Response(LotSerializer(lot).data)

    # -------------------------------------------------
    # CREATE (stock receipt)
    # -------------------------------------------------
    @extend_schema(request=LotCreateSerializer, responses={201: LotSerializer})
    def create(self, request, *args, **kwargs):
        """
        POST /api/inventory/lots/

        Creates the lot, its lot_created ledger entry and the aggregate
        increment atomically. batch_number is generated when omitted.
        """
        serializer = LotCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            lot = lot_store.create_lot(
                v["product_id"],
                v["quantity"],
                v.get("expiry_date"),
                manufacture_date=v.get("manufacture_date"),
                cost_per_unit=v.get("cost_per_unit"),
                supplier=v.get("supplier", ""),
                supplier_reference=v.get("supplier_reference", ""),
                notes=v.get("notes", ""),
                batch_number=v.get("batch_number"),
                actor=actor_for(request),
            )
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)

        return Response(LotSerializer(lot).data, status=status.HTTP_201_CREATED)

    # -------------------------------------------------
    # ACTIONS
    # -------------------------------------------------
    def _run(self, fn, *args, **kwargs):
        try:
            lot = fn(*args, **kwargs)
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)
        return Response(LotSerializer(lot).data, status=status.HTTP_200_OK)

    @extend_schema(request=LotAdjustSerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="adjust")
    def adjust(self, request, pk=None):
        """
        Set a lot to a counted quantity.

        new_quantity must lie between reserved_quantity and original_quantity.
        An "adjustment" that leaves the quantity unchanged is rejected (400);
        use transaction_type "count" to record a confirming count. "damaged"
        must reduce the quantity.
        """
        serializer = LotAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        return self._run(
            lifecycle.adjust_quantity,
            pk,
            v["new_quantity"],
            v["reason"],
            actor_for(request),
            transaction_type=v["transaction_type"],
        )

    @extend_schema(request=LotQuantitySerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="damage")
    def damage(self, request, pk=None):
        serializer = LotQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            lifecycle.record_damage,
            pk,
            serializer.validated_data["quantity"],
            serializer.validated_data["reason"],
            actor_for(request),
        )

    @extend_schema(request=LotReasonSerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="quarantine")
    def quarantine(self, request, pk=None):
        serializer = LotReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._run(
            lifecycle.quarantine_lot,
            pk,
            serializer.validated_data["reason"],
            actor_for(request),
        )

    @extend_schema(request=LotReasonSerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="release")
    def release(self, request, pk=None):
        serializer = LotReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._run(
            lifecycle.release_quarantine,
            pk,
            serializer.validated_data["reason"],
            actor_for(request),
        )

    @extend_schema(request=LotQuantitySerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="reserve")
    def reserve(self, request, pk=None):
        serializer = LotQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._run(
            lifecycle.reserve,
            pk,
            serializer.validated_data["quantity"],
            actor_for(request),
        )

    @extend_schema(request=LotQuantitySerializer, responses={200: LotSerializer})
    @action(detail=True, methods=["post"], url_path="release-reservation")
    def release_reservation(self, request, pk=None):
        serializer = LotQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._run(
            lifecycle.release_reservation,
            pk,
            serializer.validated_data["quantity"],
            actor_for(request),
        )
