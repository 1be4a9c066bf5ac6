# permissions/management/commands/seed_roles.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from permissions.roles import (
    ROLE_ADMIN,
    ROLE_AUDITOR,
    ROLE_CASHIER,
    ROLE_MANAGER,
    ROLE_PHARMACIST,
    STAFF_ROLES,
)


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    username: str
    email: str


DEMO_USERS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "admin", "admin@example.com"),
    SeedUserSpec("Manager", ROLE_MANAGER, "manager", "manager@example.com"),
    SeedUserSpec("Pharmacist", ROLE_PHARMACIST, "pharmacist", "pharmacist@example.com"),
    SeedUserSpec("Cashier", ROLE_CASHIER, "cashier", "cashier@example.com"),
    SeedUserSpec("Auditor", ROLE_AUDITOR, "auditor", "auditor@example.com"),
]


def _upsert_user(User, spec: SeedUserSpec, group: Group, password: str, force_password: bool):
    """
    Idempotent user seed:
    - create if missing
    - keep staff flags and group membership aligned if it exists
    """
    is_admin = spec.role == ROLE_ADMIN

    user, created = User.objects.get_or_create(
        username=spec.username,
        defaults={"email": spec.email, "is_staff": True, "is_superuser": is_admin},
    )

    if created or force_password:
        user.set_password(password)

    user.is_staff = True
    user.is_superuser = is_admin
    user.save()
    user.groups.add(group)
    return user, created


class Command(BaseCommand):
    help = "Create one auth group per staff role (and optionally demo users)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--with-users",
            action="store_true",
            help="Also create one demo user per role.",
        )
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for demo users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="If set, resets password for existing demo users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        with_users = bool(options.get("with_users"))
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if with_users and len(password) < 6:
            raise CommandError("--password must be provided and at least 6 characters.")

        groups = {}
        for role in sorted(STAFF_ROLES):
            group, created = Group.objects.get_or_create(name=role)
            groups[role] = group
            self.stdout.write(f"{'created' if created else 'exists '}: group {role}")

        if not with_users:
            return

        User = get_user_model()
        created_count = 0
        for spec in DEMO_USERS:
            _, created = _upsert_user(User, spec, groups[spec.role], password, force_password)
            created_count += int(created)
            self.stdout.write(f"{'created' if created else 'exists '}: {spec.label} ({spec.username})")

        self.stdout.write(f"Created users: {created_count}")
