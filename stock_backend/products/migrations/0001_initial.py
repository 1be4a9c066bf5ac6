"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product (DIRECTORY)
"""

from __future__ import annotations

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                (
                    "sku",
                    models.CharField(max_length=128, unique=True, db_index=True),
                ),
                (
                    "name",
                    models.CharField(max_length=255, db_index=True),
                ),
                (
                    "low_stock_threshold",
                    models.PositiveIntegerField(default=10),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["name"], name="product_name_idx"),
                ],
            },
        ),
    ]
