# inventory/services/transactions.py

"""
UNIT-OF-WORK RUNNER

Every mutating inventory operation runs through atomic_unit():
- one transaction.atomic() block per attempt
- serialization failures / deadlocks / lock timeouts are retried with
  exponential backoff, then surfaced as TransientConflict
- if the caller already holds a transaction, the function runs once in a
  savepoint (so a failed unit still leaves no partial effect) and the outer
  owner is responsible for retrying
"""

from __future__ import annotations

import functools
import logging
import time

from django.conf import settings
from django.db import OperationalError, connection, transaction

from .exceptions import TransientConflict

logger = logging.getLogger("inventory.transactions")

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}


def _sqlstate(exc: BaseException) -> str | None:
    cause = getattr(exc, "__cause__", None) or exc
    # psycopg 3 exposes .sqlstate, psycopg2 exposes .pgcode
    return getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, OperationalError):
        return False

    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True

    # SQLite: "database is locked" / "database table is locked"
    return "locked" in str(exc).lower()


def run_in_unit(fn, *args, **kwargs):
    if connection.in_atomic_block:
        with transaction.atomic():
            return fn(*args, **kwargs)

    max_attempts = max(1, int(getattr(settings, "INVENTORY_TX_MAX_ATTEMPTS", 3)))
    backoff = float(getattr(settings, "INVENTORY_TX_BACKOFF_SECONDS", 0.05))

    for attempt in range(1, max_attempts + 1):
        try:
            with transaction.atomic():
                return fn(*args, **kwargs)
        except OperationalError as exc:
            if not is_retryable(exc):
                raise

            logger.warning(
                "Inventory unit conflict; retrying",
                extra={
                    "operation": getattr(fn, "__name__", "unit"),
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "sqlstate": _sqlstate(exc),
                },
            )
            if attempt == max_attempts:
                raise TransientConflict(attempts=attempt) from exc

            if backoff > 0:
                time.sleep(backoff * (2 ** (attempt - 1)))

    raise TransientConflict(attempts=max_attempts)


def atomic_unit(fn):
    """Decorator form of run_in_unit()."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        return run_in_unit(fn, *args, **kwargs)

    return wrapper
