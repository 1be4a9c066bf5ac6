# inventory/services/exceptions.py

"""
INVENTORY SERVICE ERRORS

Centralized domain errors for the lot-level stock engine.

Input problems (unknown product, bad quantity, bad reference reuse) are
plain django.core.exceptions.ValidationError and are raised before any
mutation.
"""


class InventoryError(Exception):
    """Base exception for all inventory service failures."""


class LotNotFound(InventoryError):
    """Raised when a lot id does not exist."""

    def __init__(self, lot_id):
        self.lot_id = lot_id
        super().__init__(f"Lot {lot_id} not found")


class InsufficientStock(InventoryError):
    """Raised when a fulfillment asks for more than is available. Nothing is mutated."""

    def __init__(self, available: int, requested: int):
        self.available = int(available)
        self.requested = int(requested)
        super().__init__(
            f"Insufficient stock. Requested: {self.requested}, Available: {self.available}"
        )


class ConsistencyFault(InventoryError):
    """
    Raised when stored state contradicts itself (e.g. eligible lots cannot
    cover a quantity the availability check accepted). Always logged at
    CRITICAL, never retried; the whole unit rolls back.
    """


class TransientConflict(InventoryError):
    """Raised when a unit of work keeps hitting serialization/lock conflicts."""

    def __init__(self, attempts: int):
        self.attempts = int(attempts)
        super().__init__(f"Concurrent update conflict persisted after {self.attempts} attempts")


class BatchNumberCollision(InventoryError):
    """Raised when a unique batch number could not be allocated."""
