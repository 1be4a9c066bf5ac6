# inventory/services/validation.py

"""
Input normalizers shared by the inventory services.

HARD RULE: quantities are whole integer units. Anything else is a
ValidationError raised before a unit of work touches the database.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.utils.dateparse import parse_date


def to_int_qty(value, *, field: str = "quantity") -> int:
    if value is None or value == "":
        raise ValidationError({field: f"{field} is required"})

    if isinstance(value, bool):
        # bool is an int subclass in Python
        raise ValidationError({field: f"{field} must be a whole integer unit"})

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.lstrip("-").isdigit():
            return int(s)

    raise ValidationError({field: f"{field} must be a whole integer unit"})


def to_positive_qty(value, *, field: str = "quantity") -> int:
    qty = to_int_qty(value, field=field)
    if qty <= 0:
        raise ValidationError({field: f"{field} must be greater than zero"})
    return qty


def to_cost(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    try:
        cost = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError({"cost_per_unit": "cost_per_unit must be a valid decimal"}) from exc

    if not cost.is_finite():
        raise ValidationError({"cost_per_unit": "cost_per_unit must be a valid decimal"})

    if cost < Decimal("0.00"):
        raise ValidationError({"cost_per_unit": "cost_per_unit cannot be negative"})

    return cost.quantize(Decimal("0.01"))


def to_date(value, *, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value

    parsed = parse_date(str(value))
    if parsed is None:
        raise ValidationError({field: f"{field} must be a date (YYYY-MM-DD)"})
    return parsed


def require_text(value, *, field: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError({field: f"{field} is required"})
    return text
