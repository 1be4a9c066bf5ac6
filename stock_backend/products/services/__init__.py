from .directory import exists, is_active, require_active_product

__all__ = [
    "exists",
    "is_active",
    "require_active_product",
]
