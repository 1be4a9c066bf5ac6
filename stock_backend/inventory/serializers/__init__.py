from .fulfillment import (
    AllocationLineSerializer,
    FulfillmentRequestSerializer,
    FulfillmentResultSerializer,
    ReturnRequestSerializer,
)
from .ledger import LedgerEntrySerializer, StockLevelSerializer
from .lot import (
    LotAdjustSerializer,
    LotCreateSerializer,
    LotQuantitySerializer,
    LotReasonSerializer,
    LotSerializer,
)
