# inventory/services/batch_numbers.py

"""
BATCH NUMBER GENERATOR

Format: PREFIX + MMDDYY + "-" + sequence   (e.g. BT101826-4)

Rules:
- The sequence is a per-day counter derived from the highest existing batch
  number for that day, read inside the caller's transaction.
- No in-process counters (they break across workers).
- A unique-constraint hit on the candidate is retried inside a savepoint,
  each attempt stepping past the previous candidate.
"""

from __future__ import annotations

import logging
from datetime import date

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from inventory.models import Lot

from .exceptions import BatchNumberCollision

logger = logging.getLogger("inventory.batch_numbers")


def _prefix() -> str:
    return (getattr(settings, "INVENTORY_BATCH_PREFIX", "BT") or "BT").strip()


def format_date_code(on_date: date) -> str:
    return on_date.strftime("%m%d%y")


def batch_stem(on_date: date) -> str:
    return f"{_prefix()}{format_date_code(on_date)}-"


def current_max_sequence(on_date: date) -> int:
    """Highest sequence already used for `on_date` (0 when none)."""
    stem = batch_stem(on_date)
    highest = 0

    existing = Lot.objects.filter(batch_number__startswith=stem).values_list(
        "batch_number", flat=True
    )
    for batch_number in existing:
        suffix = batch_number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return highest


def next_batch_number(on_date: date | None = None, offset: int = 0) -> str:
    on_date = on_date or timezone.localdate()
    sequence = current_max_sequence(on_date) + 1 + max(0, int(offset))
    return f"{batch_stem(on_date)}{sequence}"


def _is_batch_number_collision(exc: IntegrityError) -> bool:
    return "batch_number" in str(exc).lower()


def insert_with_batch_number(create_fn, on_date: date | None = None):
    """
    Call create_fn(batch_number) until it succeeds with a unique number.

    create_fn must perform the INSERT; it runs inside a savepoint so a
    collision does not poison the surrounding transaction.
    """
    on_date = on_date or timezone.localdate()
    attempts = max(1, int(getattr(settings, "INVENTORY_BATCH_NUMBER_ATTEMPTS", 3)))

    for attempt in range(attempts):
        candidate = next_batch_number(on_date, offset=attempt)
        try:
            with transaction.atomic():
                return create_fn(candidate)
        except IntegrityError as exc:
            if not _is_batch_number_collision(exc):
                raise
            logger.warning(
                "Batch number collision",
                extra={"batch_number": candidate, "attempt": attempt + 1},
            )

    logger.error(
        "Batch number allocation exhausted",
        extra={"date_code": format_date_code(on_date), "attempts": attempts},
    )
    raise BatchNumberCollision(
        f"Could not allocate a unique batch number for {format_date_code(on_date)} "
        f"after {attempts} attempts"
    )
