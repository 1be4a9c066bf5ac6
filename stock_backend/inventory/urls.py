# inventory/urls.py

"""
INVENTORY URLS

Purpose:
- Register inventory routes under /api/inventory/
    lots/                         list / create / retrieve + lot actions
    fulfillments/                 FEFO fulfillment (+ fulfillments/return/)
    ledger/                       read-only ledger
    stock/<product_id>/           aggregate read (+ reconcile/)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.views import (
    FulfillmentViewSet,
    LedgerEntryViewSet,
    LotViewSet,
    StockLevelView,
    StockReconcileView,
)

router = DefaultRouter()

router.register(r"lots", LotViewSet, basename="lots")
router.register(r"fulfillments", FulfillmentViewSet, basename="fulfillments")
router.register(r"ledger", LedgerEntryViewSet, basename="ledger")

urlpatterns = [
    path("stock/<uuid:product_id>/", StockLevelView.as_view(), name="stock-level"),
    path(
        "stock/<uuid:product_id>/reconcile/",
        StockReconcileView.as_view(),
        name="stock-reconcile",
    ),
    path("", include(router.urls)),
]
