"""
PATH: inventory/models/__init__.py

Inventory models export surface.
"""

from .lot import Lot
from .ledger_entry import LedgerEntry
from .stock_aggregate import StockAggregate
from .fulfillment import Fulfillment

__all__ = [
    "Lot",
    "LedgerEntry",
    "StockAggregate",
    "Fulfillment",
]
