# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
# Roles come from the identity collaborator. Locally they are read from
# `user.role` when present, otherwise from Django group names.
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_PHARMACIST = "pharmacist"
ROLE_CASHIER = "cashier"
ROLE_AUDITOR = "auditor"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_PHARMACIST,
    ROLE_CASHIER,
    ROLE_AUDITOR,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_POS_SELL = "pos.sell"
CAP_POS_REFUND = "pos.refund"

CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_EDIT = "inventory.edit"
CAP_INVENTORY_ADJUST = "inventory.adjust"     # sensitive manual adjustments

CAP_AUDIT_VIEW = "audit.view"
CAP_AUDIT_RECONCILE = "audit.reconcile"

ALL_CAPABILITIES = {
    CAP_POS_SELL,
    CAP_POS_REFUND,
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_ADJUST,
    CAP_AUDIT_VIEW,
    CAP_AUDIT_RECONCILE,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        CAP_POS_SELL,
        CAP_POS_REFUND,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
        CAP_INVENTORY_ADJUST,
        CAP_AUDIT_VIEW,
    },
    ROLE_PHARMACIST: {
        CAP_POS_SELL,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
    },
    ROLE_CASHIER: {
        CAP_POS_SELL,
        # deliberately NOT refund, unless you decide otherwise
    },
    ROLE_AUDITOR: {
        CAP_INVENTORY_VIEW,
        CAP_AUDIT_VIEW,
        CAP_AUDIT_RECONCILE,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    role = getattr(user, "role", None)
    if role:
        return role

    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN

    groups = getattr(user, "groups", None)
    if groups is None:
        return None

    for name in groups.values_list("name", flat=True):
        if name in STAFF_ROLES:
            return name
    return None


def effective_capabilities_for(user) -> set[str]:
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_INVENTORY_ADJUST
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # If not set, deny-by-default to avoid accidental open endpoints
            return False

        return required in effective_capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a list.

    Usage:
        view.required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_AUDIT_VIEW}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))
