"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Order entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from __future__ import annotations

from decimal import Decimal

from core.exceptions import InvalidStatusTransition
from orders.models import Order

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_COMPLETED,
    Order.STATUS_CANCELLED,
}

# cancellation is refused once the vehicle has left the dealership
NON_CANCELLABLE_STATES = {
    Order.STATUS_DELIVERED,
    *TERMINAL_STATES,
}

ALLOWED_TRANSITIONS = {
    Order.STATUS_PENDING: {
        Order.STATUS_DEPOSIT_PAID,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_DEPOSIT_PAID: {
        Order.STATUS_WAITING_VEHICLE_REQUEST,
        Order.STATUS_VEHICLE_READY,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_WAITING_VEHICLE_REQUEST: {
        Order.STATUS_VEHICLE_READY,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_VEHICLE_READY: {
        Order.STATUS_FULLY_PAID,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_FULLY_PAID: {
        Order.STATUS_DELIVERED,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_DELIVERED: {
        Order.STATUS_COMPLETED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order: Order, target_status: str):
    if not can_transition(
        from_status=order.status,
        to_status=target_status,
    ):
        raise InvalidStatusTransition(
            f"Order {order.code} cannot transition from "
            f"'{order.status}' to '{target_status}'",
            order_id=order.pk,
            from_status=order.status,
            to_status=target_status,
        )


def deposit_threshold(*, final_amount, ratio) -> Decimal:
    return (Decimal(str(final_amount or 0)) * Decimal(str(ratio))).quantize(Decimal("0.01"))


def has_qualifying_deposit(*, order: Order, ratio) -> bool:
    paid = Decimal(order.paid_amount or 0)
    if paid <= 0:
        return False
    return paid >= deposit_threshold(final_amount=order.final_amount, ratio=ratio)
