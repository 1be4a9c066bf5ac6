# products/apps.py

"""
PRODUCTS APP CONFIG

Product directory:
- Products are created and priced elsewhere.
- Inventory only asks "does it exist?" and "is it active?".
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Product Directory"
