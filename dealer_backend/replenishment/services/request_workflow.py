# replenishment/services/request_workflow.py

"""
REQUEST WORKFLOW (APPLICATION SERVICE)

OrderRequest (dealer-internal):
- create:  one pending request per order at most
- approve: one-way; spawns one RequestVehicle per item, skipping (and
           reporting) inactive vehicles, missing colors and duplicates
- reject:  one-way; annotates the linked order, never changes its status

RequestVehicle (manufacturer-facing):
- approve = distribution: stock transfer manufacturer → dealer and dealer
  debt increase commit together, then the order state machine is notified
- reject:  pending → rejected
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.codes import generate_code
from core.concurrency import retry_on_conflict
from core.exceptions import DuplicatePendingRequest, InvalidStatusTransition, LedgerValidationError
from core.money import _money, _to_int_qty
from debts.services.debt_ledger import increase_by_distribution
from inventory.services.stock_ledger import Owner, transfer
from permissions.roles import ActorContext
from replenishment.models import OrderRequest, OrderRequestItem, RequestVehicle

logger = logging.getLogger("replenishment")


@dataclass(frozen=True)
class SkippedItem:
    item_id: object
    vehicle_id: object
    color: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "item_id": str(self.item_id),
            "vehicle_id": str(self.vehicle_id),
            "color": self.color,
            "reason": self.reason,
        }


@dataclass
class ApprovalResult:
    order_request: OrderRequest
    created: list = field(default_factory=list)
    skipped: list = field(default_factory=list)


def _actor(actor: Optional[ActorContext]) -> ActorContext:
    return actor or ActorContext.system()


def _pk(obj):
    return getattr(obj, "pk", obj)


def _refuse(obj, target: str):
    raise InvalidStatusTransition(
        f"{obj} is already {obj.status}",
        object_id=obj.pk,
        from_status=obj.status,
        to_status=target,
    )


# ============================================================
# ORDER REQUEST
# ============================================================

@retry_on_conflict
@transaction.atomic
def create_order_request(
    *,
    actor: Optional[ActorContext] = None,
    dealership,
    items: list[dict],
    order=None,
    notes: str = "",
) -> OrderRequest:
    actor = _actor(actor)

    if not items:
        raise LedgerValidationError("Order request must contain at least one item")

    if order is not None and getattr(order, "dealership_id", _pk(dealership)) != _pk(dealership):
        raise LedgerValidationError("Order belongs to a different dealership")

    cleaned = []
    for line in items:
        vehicle = line.get("vehicle")
        if vehicle is None:
            raise LedgerValidationError("vehicle is required")
        qty = _to_int_qty(line.get("quantity"))
        if qty <= 0:
            raise LedgerValidationError("quantity must be greater than zero")
        cleaned.append((vehicle, (line.get("color") or "").strip(), qty))

    if order is not None and OrderRequest.objects.filter(
        order_id=_pk(order),
        status=OrderRequest.STATUS_PENDING,
    ).exists():
        raise DuplicatePendingRequest(
            "A pending request already exists for this order",
            order_id=_pk(order),
        )

    try:
        with transaction.atomic():
            req = OrderRequest.objects.create(
                code=generate_code("REQ"),
                dealership_id=_pk(dealership),
                order_id=_pk(order) if order is not None else None,
                notes=notes or "",
                requested_by_id=actor.user_id,
            )
    except IntegrityError as exc:
        raise DuplicatePendingRequest(
            "A pending request already exists for this order",
            order_id=_pk(order),
        ) from exc

    OrderRequestItem.objects.bulk_create(
        [
            OrderRequestItem(order_request=req, vehicle_id=_pk(v), color=c, quantity=q)
            for v, c, q in cleaned
        ]
    )

    logger.info(
        "Order request created",
        extra={
            "request_code": req.code,
            "order_id": str(req.order_id) if req.order_id else None,
            "item_count": len(cleaned),
        },
    )
    return req


@retry_on_conflict
@transaction.atomic
def approve_order_request(*, actor: Optional[ActorContext] = None, order_request) -> ApprovalResult:
    actor = _actor(actor)
    req = OrderRequest.objects.select_for_update().get(pk=_pk(order_request))

    if req.is_terminal:
        _refuse(req, OrderRequest.STATUS_APPROVED)

    result = ApprovalResult(order_request=req)

    for item in req.items.select_related("vehicle").order_by("id"):
        reason = None
        if not item.vehicle.is_active:
            reason = "Vehicle is inactive"
        elif not item.color:
            reason = "Color is required"
        elif RequestVehicle.objects.filter(
            dealership_id=req.dealership_id,
            vehicle_id=item.vehicle_id,
            color=item.color,
            status__in=RequestVehicle.NON_TERMINAL_STATUSES,
        ).exists():
            reason = "Duplicate pending vehicle request"

        if reason:
            result.skipped.append(
                SkippedItem(item_id=item.pk, vehicle_id=item.vehicle_id, color=item.color, reason=reason)
            )
            continue

        result.created.append(
            RequestVehicle.objects.create(
                order_request=req,
                dealership_id=req.dealership_id,
                vehicle_id=item.vehicle_id,
                color=item.color,
                quantity=item.quantity,
            )
        )

    req.status = OrderRequest.STATUS_APPROVED
    req.decided_by_id = actor.user_id
    req.decided_at = timezone.now()
    req.save(update_fields=["status", "decided_by", "decided_at", "updated_at"])

    logger.info(
        "Order request approved",
        extra={
            "request_code": req.code,
            "created_count": len(result.created),
            "skipped_count": len(result.skipped),
        },
    )
    return result


@retry_on_conflict
@transaction.atomic
def reject_order_request(*, actor: Optional[ActorContext] = None, order_request, reason: str) -> OrderRequest:
    from orders.models import Order

    actor = _actor(actor)
    reason = (reason or "").strip()
    if not reason:
        raise LedgerValidationError("A rejection reason is required")

    req = OrderRequest.objects.select_for_update().get(pk=_pk(order_request))
    if req.is_terminal:
        _refuse(req, OrderRequest.STATUS_REJECTED)

    req.status = OrderRequest.STATUS_REJECTED
    req.rejection_reason = reason
    req.decided_by_id = actor.user_id
    req.decided_at = timezone.now()
    req.save(update_fields=["status", "rejection_reason", "decided_by", "decided_at", "updated_at"])

    if req.order_id:
        order = Order.objects.select_for_update().get(pk=req.order_id)
        note = f"[Request {req.code} rejected] {reason}"
        order.notes = f"{order.notes}\n{note}" if order.notes else note
        order.save(update_fields=["notes", "updated_at"])

    logger.info("Order request rejected", extra={"request_code": req.code, "reason": reason})
    return req


# ============================================================
# REQUEST VEHICLE (DISTRIBUTION)
# ============================================================

@retry_on_conflict
@transaction.atomic
def approve_vehicle_request(*, actor: Optional[ActorContext] = None, request_vehicle) -> RequestVehicle:
    """
    Distribute: manufacturer stock → dealer stock, dealer debt += price × qty.
    InsufficientStock at the manufacturer leaves the request pending.
    """
    from orders.services.order_state_machine import on_vehicles_distributed

    actor = _actor(actor)
    rv = (
        RequestVehicle.objects
        .select_for_update()
        .select_related("vehicle")
        .get(pk=_pk(request_vehicle))
    )

    if rv.status != RequestVehicle.STATUS_PENDING:
        _refuse(rv, RequestVehicle.STATUS_APPROVED)

    vehicle = rv.vehicle
    if not vehicle.is_active:
        raise LedgerValidationError(f"Vehicle {vehicle.sku} is inactive")

    reference = f"REQUEST_VEHICLE:{rv.pk}"

    moved = transfer(
        vehicle=vehicle,
        color=rv.color,
        from_owner=Owner.manufacturer(vehicle.manufacturer_id),
        to_owner=Owner.dealer(rv.dealership_id),
        quantity=rv.quantity,
        unit_cost=vehicle.price,
        reference=reference,
        user=actor.user_id,
    )

    debt = increase_by_distribution(
        dealership=rv.dealership_id,
        manufacturer=vehicle.manufacturer_id,
        amount=_money(vehicle.price * rv.quantity),
        reference=reference,
        vehicle=vehicle,
        quantity=rv.quantity,
    )

    rv.status = RequestVehicle.STATUS_APPROVED
    rv.debt = debt
    rv.transfer = moved.transfer
    rv.processed_by_id = actor.user_id
    rv.processed_at = timezone.now()
    rv.save(update_fields=["status", "debt", "transfer", "processed_by", "processed_at", "updated_at"])

    logger.info(
        "Vehicle request distributed",
        extra={
            "request_vehicle_id": str(rv.pk),
            "vehicle_sku": vehicle.sku,
            "color": rv.color,
            "quantity": rv.quantity,
            "debt_id": str(debt.pk),
        },
    )

    if rv.order_request_id:
        on_vehicles_distributed(order_request=rv.order_request, actor=actor)

    return rv


@retry_on_conflict
@transaction.atomic
def reject_vehicle_request(
    *,
    actor: Optional[ActorContext] = None,
    request_vehicle,
    reason: str = "",
) -> RequestVehicle:
    actor = _actor(actor)
    rv = RequestVehicle.objects.select_for_update().get(pk=_pk(request_vehicle))

    if rv.status != RequestVehicle.STATUS_PENDING:
        _refuse(rv, RequestVehicle.STATUS_REJECTED)

    reason = (reason or "").strip()
    rv.status = RequestVehicle.STATUS_REJECTED
    if reason:
        rv.notes = f"{rv.notes}\n{reason}" if rv.notes else reason
    rv.processed_by_id = actor.user_id
    rv.processed_at = timezone.now()
    rv.save(update_fields=["status", "notes", "processed_by", "processed_at", "updated_at"])

    logger.info("Vehicle request rejected", extra={"request_vehicle_id": str(rv.pk), "reason": reason})
    return rv
