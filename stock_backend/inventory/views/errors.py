# inventory/views/errors.py

"""
Service error -> HTTP response mapping.

- ValidationError      400
- LotNotFound          404
- InsufficientStock    409 (with available / requested)
- ConsistencyFault     500
- TransientConflict    503
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.response import Response

from inventory.services.exceptions import (
    BatchNumberCollision,
    ConsistencyFault,
    InsufficientStock,
    LotNotFound,
    TransientConflict,
)


def _validation_detail(exc: ValidationError):
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return exc.messages


def inventory_error_response(exc: Exception) -> Response:
    if isinstance(exc, ValidationError):
        return Response({"detail": _validation_detail(exc)}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, LotNotFound):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, InsufficientStock):
        return Response(
            {
                "detail": str(exc),
                "available": exc.available,
                "requested": exc.requested,
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, (TransientConflict, BatchNumberCollision)):
        return Response({"detail": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    if isinstance(exc, ConsistencyFault):
        return Response(
            {"detail": "Inventory consistency fault; the operation was rolled back."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    raise exc


HANDLED_ERRORS = (
    ValidationError,
    LotNotFound,
    InsufficientStock,
    TransientConflict,
    BatchNumberCollision,
    ConsistencyFault,
)
