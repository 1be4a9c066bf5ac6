# inventory/management/commands/reconcile_stock.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand

from inventory.services.aggregates import reconcile_all, reconcile_with_drift


class Command(BaseCommand):
    help = "Recompute cached stock totals from lots and report drift (integrity job)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--product",
            dest="product_id",
            help="Only reconcile this product UUID",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any drift was found.",
        )

    def handle(self, *args, **options):
        product_id = (options.get("product_id") or "").strip()
        strict = bool(options.get("strict"))

        self.stdout.write(self.style.MIGRATE_HEADING("Stock aggregate reconciliation"))

        if product_id:
            try:
                cached, computed = reconcile_with_drift(product_id)
            except ValidationError:
                self.stderr.write(self.style.ERROR(f"Unknown product: {product_id}"))
                return self._exit(True)

            drifted = {product_id: (cached, computed)} if cached != computed else {}
        else:
            drifted = reconcile_all()

        if not drifted:
            self.stdout.write(self.style.SUCCESS("[OK] No drift found"))
            return None

        self.stderr.write(self.style.ERROR(f"[FAIL] Drift corrected for {len(drifted)} product(s)"))
        for pid, (cached, computed) in drifted.items():
            self.stderr.write(f"  product_id={pid} cached={cached} computed={computed}")

        return self._exit(strict)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
