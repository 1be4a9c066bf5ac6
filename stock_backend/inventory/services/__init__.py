"""
PATH: inventory/services/__init__.py

Public service surface of the lot-level inventory engine.
"""

from .aggregates import read_aggregate, reconcile, reconcile_all
from .allocator import AllocationLine, FulfillmentResult, available_quantity, fulfill
from .exceptions import (
    BatchNumberCollision,
    ConsistencyFault,
    InsufficientStock,
    InventoryError,
    LotNotFound,
    TransientConflict,
)
from .lifecycle import (
    adjust_quantity,
    quarantine_lot,
    record_damage,
    release_quarantine,
    release_reservation,
    reserve,
    sweep_expired,
)
from .lot_store import LotMutation, create_lot, get_lot, list_lots, update_lot
from .returns import return_fulfillment

__all__ = [
    "AllocationLine",
    "FulfillmentResult",
    "LotMutation",
    "BatchNumberCollision",
    "ConsistencyFault",
    "InsufficientStock",
    "InventoryError",
    "LotNotFound",
    "TransientConflict",
    "adjust_quantity",
    "available_quantity",
    "create_lot",
    "fulfill",
    "get_lot",
    "list_lots",
    "quarantine_lot",
    "read_aggregate",
    "reconcile",
    "reconcile_all",
    "record_damage",
    "release_quarantine",
    "release_reservation",
    "reserve",
    "return_fulfillment",
    "sweep_expired",
    "update_lot",
]
