# orders/services/order_state_machine.py

"""
ORDER STATE MACHINE (APPLICATION SERVICE)

Coordinates stock ledger, debt ledger and replenishment around ONE order.

    pending ──deposit──► deposit_paid ──allocate ok──► vehicle_ready ──paid──► fully_paid
                              │                             ▲                      │
                              └─shortage─► waiting_vehicle_request                 ▼
                                           (OrderRequest created)             delivered ──► completed

    cancelled: from any state before delivered (stock reversed, debt voided)

GUARANTEES:
- Every successful transition writes exactly ONE OrderStatusLog row in the
  same transaction as the status change.
- A refused transition raises InvalidStatusTransition and writes nothing.
- Allocation is all-or-nothing across ALL items of the order (savepoint).
- The order row is locked (select_for_update) for the whole operation.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.codes import generate_code
from core.concurrency import retry_on_conflict
from core.exceptions import InsufficientStock, InvalidStatusTransition, LedgerValidationError
from core.money import ZERO, _money
from debts.services.debt_ledger import open_customer_debt, void_customer_debt
from inventory.services.stock_ledger import Owner, allocate, available_quantity, reverse
from orders.models import Order, OrderItem, OrderStatusLog, UsedStock
from orders.services.order_lifecycle import (
    NON_CANCELLABLE_STATES,
    has_qualifying_deposit,
    validate_transition,
)
from orders.services.pricing import price_line
from permissions.roles import ActorContext

logger = logging.getLogger("orders")


class _AllocationShortfall(Exception):
    def __init__(self, shortages):
        super().__init__("allocation shortfall")
        self.shortages = shortages


# ============================================================
# HELPERS
# ============================================================

def _actor(actor: Optional[ActorContext]) -> ActorContext:
    return actor or ActorContext.system()


def _deposit_ratio() -> Decimal:
    return Decimal(str(getattr(settings, "ORDER_DEPOSIT_MIN_RATIO", "0.10")))


def _lock_order(order) -> Order:
    return Order.objects.select_for_update().get(pk=getattr(order, "pk", order))


def allocation_reference(order: Order) -> str:
    return f"ORDER:{order.code}"


def _write_log(
    *,
    order: Order,
    old_status: str,
    new_status: str,
    actor: ActorContext,
    reason: str = "",
    notes: str = "",
    payment_info: Optional[dict] = None,
) -> OrderStatusLog:
    return OrderStatusLog.objects.create(
        order=order,
        old_status=old_status,
        new_status=new_status,
        changed_by_id=actor.user_id,
        changed_by_name=actor.display_name,
        reason=reason,
        notes=notes,
        payment_info=payment_info,
    )


def _transition(
    *,
    order: Order,
    target: str,
    actor: ActorContext,
    reason: str = "",
    notes: str = "",
    payment_info: Optional[dict] = None,
    **timestamps,
) -> Order:
    validate_transition(order=order, target_status=target)

    old = order.status
    order.status = target
    update_fields = ["status", "updated_at"]
    for field, value in timestamps.items():
        setattr(order, field, value)
        update_fields.append(field)
    order.save(update_fields=update_fields)

    _write_log(
        order=order,
        old_status=old,
        new_status=target,
        actor=actor,
        reason=reason,
        notes=notes,
        payment_info=payment_info,
    )

    logger.info(
        "Order status changed",
        extra={
            "order_id": str(order.pk),
            "order_code": order.code,
            "from_status": old,
            "to_status": target,
            "actor": actor.display_name,
        },
    )
    return order


# ============================================================
# CREATE
# ============================================================

@retry_on_conflict
@transaction.atomic
def create_order(
    *,
    actor: Optional[ActorContext] = None,
    customer,
    dealership,
    items: list[dict],
    payment_method: str = Order.PAYMENT_CASH,
    notes: str = "",
) -> Order:
    """
    Price the items, create Order + items + CustomerDebt, log "" → pending.
    """
    actor = _actor(actor)

    if not items:
        raise LedgerValidationError("Order must contain at least one item")
    if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise LedgerValidationError(f"Unknown payment method: {payment_method}")
    customer_dealership_id = getattr(customer, "dealership_id", None)
    if customer_dealership_id and customer_dealership_id != getattr(dealership, "pk", dealership):
        raise LedgerValidationError(
            "Customer belongs to another dealership",
            customer_id=customer.pk,
            dealership_id=getattr(dealership, "pk", dealership),
        )

    now = timezone.now()
    priced = [price_line(line=line, dealership=dealership, at=now) for line in items]

    subtotal = _money(sum((p.gross_amount for p in priced), ZERO))
    final = _money(sum((p.final_amount for p in priced), ZERO))

    order = Order.objects.create(
        code=generate_code("ORD", at=now),
        customer=customer,
        dealership=dealership,
        salesperson_id=actor.user_id,
        payment_method=payment_method,
        subtotal_amount=subtotal,
        discount_amount=_money(subtotal - final),
        final_amount=final,
        paid_amount=ZERO,
        notes=notes or "",
    )

    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                vehicle=p.vehicle,
                color=p.color,
                quantity=p.quantity,
                unit_price=p.unit_price,
                discount=p.discount,
                promotion=p.promotion,
                promotion_discount=p.promotion_discount,
                options=p.options,
                accessories=p.accessories,
                final_amount=p.final_amount,
            )
            for p in priced
        ]
    )

    open_customer_debt(order=order)

    _write_log(
        order=order,
        old_status="",
        new_status=Order.STATUS_PENDING,
        actor=actor,
        reason="Order created",
    )

    logger.info(
        "Order created",
        extra={
            "order_id": str(order.pk),
            "order_code": order.code,
            "final_amount": str(final),
            "item_count": len(priced),
        },
    )
    return order


# ============================================================
# ALLOCATION
# ============================================================

def _allocation_order(items) -> list:
    # color-specific items first so colorless ones only take what is left
    return sorted(items, key=lambda item: (not item.color, str(item.pk)))


def _allocate_all_items(*, order: Order, actor: ActorContext) -> list:
    """
    Allocate every unallocated item from the dealership's stock.

    Returns [] on success. On any shortage, nothing stays allocated and
    the list of (item, InsufficientStock) pairs is returned.
    """
    ref = allocation_reference(order)
    owner = Owner.dealer(order.dealership_id)

    try:
        with transaction.atomic():
            shortages = []
            items = order.items.select_related("vehicle").prefetch_related("used_stocks")
            for item in _allocation_order(items):
                if item.is_allocated:
                    continue
                try:
                    lines = allocate(
                        vehicle=item.vehicle,
                        owner=owner,
                        quantity=item.quantity,
                        color=item.color or None,
                        reference=ref,
                        user=actor.user_id,
                    )
                except InsufficientStock as exc:
                    shortages.append((item, exc))
                    continue

                UsedStock.objects.bulk_create(
                    [UsedStock(item=item, batch_id=ln.batch_id, quantity=ln.quantity) for ln in lines]
                )

            if shortages:
                raise _AllocationShortfall(shortages)
    except _AllocationShortfall as shortfall:
        return shortfall.shortages

    return []


def _request_color(item) -> str:
    color = item.color or next(iter(item.vehicle.color_options or []), "")
    if not color:
        raise LedgerValidationError(
            f"Cannot request resupply for {item.vehicle.sku}: no color given and none offered",
            order_item_id=item.pk,
        )
    return color


def _missing_per_vehicle_color(*, order: Order) -> list[dict]:
    """
    Units to request per (vehicle, color): everything the unallocated items
    need under that key minus what the dealership holds in that color.
    Called after the allocation savepoint rolled back, so availability is
    the pre-allocation count.
    """
    owner = Owner.dealer(order.dealership_id)
    needed: dict[tuple, dict] = {}

    for item in order.items.select_related("vehicle").prefetch_related("used_stocks").order_by("id"):
        if item.is_allocated:
            continue
        key = (item.vehicle_id, _request_color(item))
        entry = needed.setdefault(key, {"vehicle": item.vehicle, "color": key[1], "quantity": 0})
        entry["quantity"] += int(item.quantity)

    request_items = []
    for entry in needed.values():
        missing = entry["quantity"] - available_quantity(
            vehicle=entry["vehicle"],
            owner=owner,
            color=entry["color"],
        )
        if missing > 0:
            request_items.append({**entry, "quantity": missing})
    return request_items


def _request_missing_vehicles(*, order: Order, actor: ActorContext):
    from replenishment.services.request_workflow import create_order_request

    return create_order_request(
        actor=actor,
        dealership=order.dealership,
        items=_missing_per_vehicle_color(order=order),
        order=order,
        notes=f"Auto-created: insufficient stock for order {order.code}",
    )


def _fulfil(*, order: Order, actor: ActorContext, payment_info: Optional[dict] = None) -> bool:
    """
    From deposit_paid / waiting_vehicle_request: try to allocate and move
    to vehicle_ready (and on to fully_paid when already paid in full).
    """
    shortages = _allocate_all_items(order=order, actor=actor)

    if shortages:
        if order.status == Order.STATUS_DEPOSIT_PAID:
            _transition(
                order=order,
                target=Order.STATUS_WAITING_VEHICLE_REQUEST,
                actor=actor,
                reason="Insufficient stock",
                notes="; ".join(f"{it.vehicle.sku} {it.color or '-'}: {exc.message}" for it, exc in shortages),
            )
            _request_missing_vehicles(order=order, actor=actor)
        return False

    _transition(
        order=order,
        target=Order.STATUS_VEHICLE_READY,
        actor=actor,
        reason="Vehicles allocated",
    )
    if order.is_fully_paid:
        _transition(
            order=order,
            target=Order.STATUS_FULLY_PAID,
            actor=actor,
            reason="Payment completed",
            payment_info=payment_info,
        )
    return True


def advance_after_payment(*, order: Order, actor: ActorContext, payment_info: Optional[dict] = None) -> Order:
    """
    Payment-driven transitions. Caller holds the order lock and the transaction.
    """
    if order.status == Order.STATUS_PENDING:
        if has_qualifying_deposit(order=order, ratio=_deposit_ratio()):
            _transition(
                order=order,
                target=Order.STATUS_DEPOSIT_PAID,
                actor=actor,
                reason="Deposit received",
                payment_info=payment_info,
            )
            _fulfil(order=order, actor=actor, payment_info=payment_info)
    elif order.status == Order.STATUS_VEHICLE_READY and order.is_fully_paid:
        _transition(
            order=order,
            target=Order.STATUS_FULLY_PAID,
            actor=actor,
            reason="Payment completed",
            payment_info=payment_info,
        )
    return order


@retry_on_conflict
@transaction.atomic
def retry_allocation(*, actor: Optional[ActorContext] = None, order) -> Order:
    """
    Manual retry for an order waiting on vehicles.
    Raises InsufficientStock (first shortage) when stock is still missing.
    """
    actor = _actor(actor)
    order = _lock_order(order)

    if order.status != Order.STATUS_WAITING_VEHICLE_REQUEST:
        raise InvalidStatusTransition(
            f"Order {order.code} is not waiting for vehicles (status '{order.status}')",
            order_id=order.pk,
            from_status=order.status,
            to_status=Order.STATUS_VEHICLE_READY,
        )

    shortages = _allocate_all_items(order=order, actor=actor)
    if shortages:
        _, exc = shortages[0]
        raise exc

    _transition(order=order, target=Order.STATUS_VEHICLE_READY, actor=actor, reason="Vehicles allocated")
    if order.is_fully_paid:
        _transition(order=order, target=Order.STATUS_FULLY_PAID, actor=actor, reason="Payment completed")
    return order


def on_vehicles_distributed(*, order_request, actor: Optional[ActorContext] = None) -> Optional[Order]:
    """
    Hook fired (inside the distribution transaction) after a RequestVehicle
    is approved. When every vehicle request of an approved OrderRequest is
    processed, the linked waiting order retries allocation.
    """
    from replenishment.models import OrderRequest, RequestVehicle

    actor = _actor(actor)

    if not order_request.order_id or order_request.status != OrderRequest.STATUS_APPROVED:
        return None

    if order_request.vehicle_requests.filter(status=RequestVehicle.STATUS_PENDING).exists():
        return None

    order = _lock_order(order_request.order_id)
    if order.status != Order.STATUS_WAITING_VEHICLE_REQUEST:
        return order

    if not _fulfil(order=order, actor=actor):
        logger.info(
            "Distributed vehicles do not yet cover order",
            extra={"order_code": order.code, "order_request": order_request.code},
        )
    return order


# ============================================================
# DELIVERY / COMPLETION
# ============================================================

@retry_on_conflict
@transaction.atomic
def confirm_delivery(*, actor: Optional[ActorContext] = None, order, notes: str = "") -> Order:
    actor = _actor(actor)
    order = _lock_order(order)
    return _transition(
        order=order,
        target=Order.STATUS_DELIVERED,
        actor=actor,
        reason="Delivery confirmed",
        notes=notes,
        delivered_at=timezone.now(),
    )


@retry_on_conflict
@transaction.atomic
def complete_order(*, actor: Optional[ActorContext] = None, order, notes: str = "") -> Order:
    actor = _actor(actor)
    order = _lock_order(order)
    return _transition(
        order=order,
        target=Order.STATUS_COMPLETED,
        actor=actor,
        reason="Order completed",
        notes=notes,
        completed_at=timezone.now(),
    )


# ============================================================
# CANCELLATION (COMPENSATION)
# ============================================================

@retry_on_conflict
@transaction.atomic
def cancel_order(*, actor: Optional[ActorContext] = None, order, reason: str = "") -> Order:
    """
    Cancel an order before delivery:
    - reverse every active used_stock line (stock back to its batches)
    - void the customer debt
    - cancel a still-pending OrderRequest for the order
    Payments and dealer-debt settlements already made are NOT unwound.
    """
    from replenishment.models import OrderRequest

    actor = _actor(actor)
    order = _lock_order(order)

    if order.status in NON_CANCELLABLE_STATES:
        raise InvalidStatusTransition(
            f"Order {order.code} cannot be cancelled from '{order.status}'",
            order_id=order.pk,
            from_status=order.status,
            to_status=Order.STATUS_CANCELLED,
        )
    validate_transition(order=order, target_status=Order.STATUS_CANCELLED)

    now = timezone.now()
    active = list(
        UsedStock.objects
        .select_for_update()
        .filter(item__order=order, reversed_at__isnull=True)
        .order_by("batch_id")
    )
    if active:
        reverse(
            lines=[(u.batch_id, u.quantity) for u in active],
            reference=allocation_reference(order),
            user=actor.user_id,
        )
        UsedStock.objects.filter(pk__in=[u.pk for u in active]).update(reversed_at=now)

    void_customer_debt(order=order)

    canceled_requests = OrderRequest.objects.filter(
        order=order,
        status=OrderRequest.STATUS_PENDING,
    ).update(status=OrderRequest.STATUS_CANCELED, decided_at=now, decided_by_id=actor.user_id)

    _transition(
        order=order,
        target=Order.STATUS_CANCELLED,
        actor=actor,
        reason=reason or "Order cancelled",
        cancelled_at=now,
    )

    logger.info(
        "Order cancelled",
        extra={
            "order_code": order.code,
            "reversed_lines": len(active),
            "canceled_requests": canceled_requests,
        },
    )
    return order
