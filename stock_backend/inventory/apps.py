# inventory/apps.py

"""
INVENTORY APP CONFIG

Lot-level stock engine:
- Lots (one per receipt) with expiry + cost
- Append-only ledger
- FEFO fulfillment
- Per-product stock aggregate (+ reconciliation)
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory"
