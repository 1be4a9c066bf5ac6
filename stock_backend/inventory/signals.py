# inventory/signals.py

"""
Post-commit inventory notifications.

stock_changed is sent once per committed unit of work with
`product_id` and `reason` keyword arguments. Receivers (notifications,
analytics) live outside this app.
"""

from __future__ import annotations

from django.db import transaction
from django.dispatch import Signal

stock_changed = Signal()


def notify_stock_changed(product_id, reason: str) -> None:
    """Queue stock_changed for after the current transaction commits."""

    def _send():
        stock_changed.send(sender=None, product_id=product_id, reason=reason)

    transaction.on_commit(_send)
