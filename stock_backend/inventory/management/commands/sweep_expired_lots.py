# inventory/management/commands/sweep_expired_lots.py

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from inventory.services.lifecycle import sweep_expired


def _parse_date(s: str | None):
    """
    Parse YYYY-MM-DD into a date, or None.
    """
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class Command(BaseCommand):
    help = "Move ACTIVE lots past their expiry date to EXPIRED (scheduler entry point)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            dest="as_of",
            help="Treat this YYYY-MM-DD as today (default: local date)",
        )

    def handle(self, *args, **options):
        raw = options.get("as_of")
        as_of = _parse_date(raw)
        if raw and not as_of:
            raise CommandError("Invalid --date. Use YYYY-MM-DD")

        today = as_of or timezone.localdate()
        swept = sweep_expired(today=today)

        self.stdout.write(
            self.style.SUCCESS(f"[OK] Expired {swept} lot(s) as of {today.isoformat()}")
        )
