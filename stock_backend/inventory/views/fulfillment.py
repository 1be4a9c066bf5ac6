# inventory/views/fulfillment.py

"""
FULFILLMENT ENDPOINTS

POST /api/inventory/fulfillments/          FEFO deduction (idempotent per reference)
POST /api/inventory/fulfillments/return/   return units of a previous fulfillment

Status codes:
- 201 fulfilled, 200 idempotent replay
- 409 insufficient stock (nothing mutated)
- 500 consistency fault, 503 transient conflict
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.serializers import (
    AllocationLineSerializer,
    FulfillmentRequestSerializer,
    FulfillmentResultSerializer,
    ReturnRequestSerializer,
)
from inventory.services import allocator, returns
from permissions.roles import CAP_POS_REFUND, CAP_POS_SELL, HasCapability

from .errors import HANDLED_ERRORS, inventory_error_response
from .lot import actor_for


class FulfillmentViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    required_capability = None

    def get_permissions(self):
        self.required_capability = None

        if self.action == "create":
            self.required_capability = CAP_POS_SELL
            return [IsAuthenticated(), HasCapability()]

        if self.action == "return_units":
            self.required_capability = CAP_POS_REFUND
            return [IsAuthenticated(), HasCapability()]

        return [IsAuthenticated()]

    @extend_schema(
        request=FulfillmentRequestSerializer,
        responses={201: FulfillmentResultSerializer, 200: FulfillmentResultSerializer},
    )
    def create(self, request):
        serializer = FulfillmentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            result = allocator.fulfill(
                v["product_id"],
                v["quantity"],
                v["reference"],
                actor_for(request),
            )
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)

        data = FulfillmentResultSerializer(
            {
                "product_id": result.product_id,
                "reference": result.reference,
                "quantity": result.quantity,
                "replayed": result.replayed,
                "total_cost": result.total_cost,
                "lines": list(result.lines),
            }
        ).data
        return Response(
            data,
            status=status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED,
        )

    @extend_schema(request=ReturnRequestSerializer, responses={200: AllocationLineSerializer(many=True)})
    @action(detail=False, methods=["post"], url_path="return")
    def return_units(self, request):
        serializer = ReturnRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            lines = returns.return_fulfillment(
                v["product_id"],
                v["reference"],
                quantity=v.get("quantity"),
                reason=v.get("reason", ""),
                actor=actor_for(request),
            )
        except HANDLED_ERRORS as exc:
            return inventory_error_response(exc)

        return Response(
            {
                "reference": v["reference"],
                "quantity": sum(line.quantity for line in lines),
                "lines": AllocationLineSerializer(lines, many=True).data,
            },
            status=status.HTTP_200_OK,
        )
