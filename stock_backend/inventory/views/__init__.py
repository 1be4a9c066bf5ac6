from .fulfillment import FulfillmentViewSet
from .lot import LotViewSet
from .stock import LedgerEntryViewSet, StockLevelView, StockReconcileView

__all__ = [
    "FulfillmentViewSet",
    "LedgerEntryViewSet",
    "LotViewSet",
    "StockLevelView",
    "StockReconcileView",
]
