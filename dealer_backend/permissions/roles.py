# permissions/roles.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db import models
from rest_framework.permissions import BasePermission


# =========================================================
# ROLES (CLOSED SET)
# =========================================================
# Stored on User.role. Anything else is treated as "no role".
class Role(models.TextChoices):
    ADMIN = "admin", "Admin"
    EVM_STAFF = "evm_staff", "EVM Staff"
    DEALER_MANAGER = "dealer_manager", "Dealer Manager"
    DEALER_STAFF = "dealer_staff", "Dealer Staff"


DEALER_ROLES = {Role.DEALER_MANAGER, Role.DEALER_STAFF}
MANUFACTURER_ROLES = {Role.EVM_STAFF}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_ORDERS_VIEW = "orders.view"
CAP_ORDERS_CREATE = "orders.create"
CAP_ORDERS_PAY = "orders.pay"
CAP_ORDERS_DELIVER = "orders.deliver"
CAP_ORDERS_CANCEL = "orders.cancel"

CAP_REQUESTS_CREATE = "requests.create"
CAP_REQUESTS_APPROVE = "requests.approve"       # dealer manager sign-off
CAP_REQUESTS_DISTRIBUTE = "requests.distribute"  # manufacturer ships vehicles

CAP_DEBTS_VIEW = "debts.view"
CAP_DEBTS_PAY_MANUFACTURER = "debts.pay_manufacturer"

CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_INTAKE = "inventory.intake"

CAP_CATALOG_VIEW = "catalog.view"
CAP_CATALOG_EDIT = "catalog.edit"

ALL_CAPABILITIES = {
    CAP_ORDERS_VIEW,
    CAP_ORDERS_CREATE,
    CAP_ORDERS_PAY,
    CAP_ORDERS_DELIVER,
    CAP_ORDERS_CANCEL,
    CAP_REQUESTS_CREATE,
    CAP_REQUESTS_APPROVE,
    CAP_REQUESTS_DISTRIBUTE,
    CAP_DEBTS_VIEW,
    CAP_DEBTS_PAY_MANUFACTURER,
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_INTAKE,
    CAP_CATALOG_VIEW,
    CAP_CATALOG_EDIT,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    Role.ADMIN: {
        *ALL_CAPABILITIES,
    },
    Role.EVM_STAFF: {
        CAP_REQUESTS_DISTRIBUTE,
        CAP_DEBTS_VIEW,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_INTAKE,
        CAP_CATALOG_VIEW,
        CAP_CATALOG_EDIT,
    },
    Role.DEALER_MANAGER: {
        CAP_ORDERS_VIEW,
        CAP_ORDERS_CREATE,
        CAP_ORDERS_PAY,
        CAP_ORDERS_DELIVER,
        CAP_ORDERS_CANCEL,
        CAP_REQUESTS_CREATE,
        CAP_REQUESTS_APPROVE,
        CAP_DEBTS_VIEW,
        CAP_DEBTS_PAY_MANUFACTURER,
        CAP_INVENTORY_VIEW,
        CAP_CATALOG_VIEW,
    },
    Role.DEALER_STAFF: {
        CAP_ORDERS_VIEW,
        CAP_ORDERS_CREATE,
        CAP_ORDERS_PAY,
        CAP_ORDERS_DELIVER,
        CAP_REQUESTS_CREATE,
        CAP_INVENTORY_VIEW,
        CAP_CATALOG_VIEW,
    },
}


# =========================================================
# Helpers
# =========================================================
def parse_role(value) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def has_capability(role, capability: str) -> bool:
    """
    The single capability check. Unknown roles have no capabilities.
    """
    r = parse_role(role)
    if r is None:
        return False
    return capability in ROLE_CAPABILITIES.get(r, set())


def capabilities_for(user) -> set[str]:
    r = parse_role(getattr(user, "role", None))
    if r is None:
        return set()
    return set(ROLE_CAPABILITIES.get(r, set()))


# =========================================================
# Actor context (what the engine receives)
# =========================================================
@dataclass(frozen=True)
class ActorContext:
    """
    Already-authorized caller identity handed to engine services.

    Engine services never look at roles; they only use the actor for
    audit fields (changed_by, requested_by...) and dealership scoping.
    """

    user_id: Optional[object] = None
    display_name: str = ""
    role: Optional[Role] = None
    dealership_id: Optional[object] = None
    manufacturer_id: Optional[object] = None

    @classmethod
    def from_user(cls, user) -> "ActorContext":
        if user is None or not getattr(user, "is_authenticated", False):
            return cls(display_name="system")
        return cls(
            user_id=user.pk,
            display_name=(getattr(user, "full_name", "") or getattr(user, "email", "") or "").strip(),
            role=parse_role(getattr(user, "role", None)),
            dealership_id=getattr(user, "dealership_id", None),
            manufacturer_id=getattr(user, "manufacturer_id", None),
        )

    @classmethod
    def system(cls) -> "ActorContext":
        return cls(display_name="system")


# =========================================================
# DRF permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_ORDERS_PAY
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default
            return False

        return has_capability(getattr(user, "role", None), required)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a list.

    Usage:
        view.required_any_capabilities = {CAP_DEBTS_VIEW, CAP_ORDERS_VIEW}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = capabilities_for(user)
        return any(cap in caps for cap in set(required))


# =========================================================
# Queryset scoping (dealer staff see their dealership only)
# =========================================================
def scope_queryset(qs, user, *, dealership_field=None, manufacturer_field=None):
    role = parse_role(getattr(user, "role", None))
    if role is None:
        return qs.none()
    if role == Role.ADMIN:
        return qs

    if role in DEALER_ROLES:
        if not dealership_field or not getattr(user, "dealership_id", None):
            return qs.none()
        return qs.filter(**{dealership_field: user.dealership_id})

    if role in MANUFACTURER_ROLES:
        if not manufacturer_field:
            return qs
        if not getattr(user, "manufacturer_id", None):
            return qs.none()
        return qs.filter(**{manufacturer_field: user.manufacturer_id})

    return qs.none()
