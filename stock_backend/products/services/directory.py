# products/services/directory.py

"""
PRODUCT DIRECTORY

Read-only lookups the inventory engine needs from the product catalogue.
Malformed ids are treated as "does not exist" rather than as errors.
"""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError

from products.models import Product


def _as_uuid(product_id) -> uuid.UUID | None:
    if isinstance(product_id, uuid.UUID):
        return product_id
    try:
        return uuid.UUID(str(product_id))
    except (TypeError, ValueError, AttributeError):
        return None


def exists(product_id) -> bool:
    pk = _as_uuid(product_id)
    if pk is None:
        return False
    return Product.objects.filter(pk=pk).exists()


def is_active(product_id) -> bool:
    pk = _as_uuid(product_id)
    if pk is None:
        return False
    return Product.objects.filter(pk=pk, is_active=True).exists()


def require_active_product(product_id) -> Product:
    """
    Return the product or raise ValidationError.

    Used before any lot is created so unknown/inactive products never
    receive stock.
    """
    pk = _as_uuid(product_id)
    if pk is None:
        raise ValidationError({"product_id": "Unknown product"})

    product = Product.objects.filter(pk=pk).first()
    if product is None:
        raise ValidationError({"product_id": "Unknown product"})

    if not product.is_active:
        raise ValidationError({"product_id": "Product is inactive"})

    return product
