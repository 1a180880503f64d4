# inventory/services/stock_ledger.py

"""
FIFO STOCK LEDGER (APPLICATION SERVICE)

Purpose:
- register_stock: manufacturer intake (new batch + INTAKE movement)
- allocate:       consume the oldest matching batches (all-or-nothing)
- transfer:       allocate at the source, create ONE new batch at the destination
- reverse:        compensating restore of previously allocated lines

HARD RULES:
- Integer quantities only.
- FIFO order = received_at ASC, then id ASC (insertion sequence).
- Batches are locked (select_for_update) in FIFO order, and every decrement
  is a conditional UPDATE on the remaining_quantity we read. A lost race
  raises ConcurrentModification (retryable) instead of overwriting.
- No partial writes: every entry point is atomic; a failure rolls back all
  batches touched by the call.

COLOR POLICY:
- color given  → only batches of that exact color.
- color empty  → all colors of that vehicle for that owner, FIFO across them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from core.concurrency import retry_on_conflict
from core.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    LedgerValidationError,
    StockAlreadyReversed,
)
from core.money import _money, _to_int_qty
from inventory.models import OwnerType, StockBatch, StockMovement, StockTransfer

logger = logging.getLogger("inventory")


# ============================================================
# VALUE TYPES
# ============================================================

@dataclass(frozen=True)
class Owner:
    owner_type: str
    owner_id: object

    @classmethod
    def manufacturer(cls, manufacturer) -> "Owner":
        return cls(OwnerType.MANUFACTURER, getattr(manufacturer, "pk", manufacturer))

    @classmethod
    def dealer(cls, dealership) -> "Owner":
        return cls(OwnerType.DEALER, getattr(dealership, "pk", dealership))

    def __post_init__(self):
        if self.owner_type not in OwnerType.values:
            raise LedgerValidationError(f"Unknown owner_type: {self.owner_type}")
        if not self.owner_id:
            raise LedgerValidationError("owner_id is required")


@dataclass(frozen=True)
class AllocationLine:
    batch_id: int
    quantity: int


@dataclass(frozen=True)
class TransferResult:
    transfer: StockTransfer
    batch: StockBatch
    consumed: list[AllocationLine]


def _user_id(user):
    if user is None:
        return None
    return getattr(user, "pk", user)


def _clean_color(color) -> str:
    return (color or "").strip()


def _batches_qs(*, vehicle, owner: Owner, color: str):
    qs = StockBatch.objects.filter(
        vehicle_id=getattr(vehicle, "pk", vehicle),
        owner_type=owner.owner_type,
        owner_id=owner.owner_id,
        remaining_quantity__gt=0,
    )
    if color:
        qs = qs.filter(color=color)
    return qs


def available_quantity(*, vehicle, owner: Owner, color: Optional[str] = None) -> int:
    """
    Read-only availability (no locks). Used for UI hints and pre-checks.
    """
    agg = _batches_qs(vehicle=vehicle, owner=owner, color=_clean_color(color)).aggregate(
        total=Sum("remaining_quantity")
    )
    return int(agg["total"] or 0)


# ============================================================
# INTAKE
# ============================================================

@retry_on_conflict
@transaction.atomic
def register_stock(
    *,
    vehicle,
    owner: Owner,
    quantity,
    color: str = "",
    unit_cost=None,
    received_at=None,
    reference: str = "",
    user=None,
) -> StockBatch:
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise LedgerValidationError("quantity must be greater than zero")

    batch = StockBatch(
        vehicle_id=getattr(vehicle, "pk", vehicle),
        color=_clean_color(color),
        owner_type=owner.owner_type,
        owner_id=owner.owner_id,
        quantity=qty,
        remaining_quantity=qty,
        unit_cost=_money(unit_cost) if unit_cost is not None else None,
        received_at=received_at or timezone.now(),
    )
    batch.full_clean()
    batch.save()

    StockMovement.objects.create(
        batch=batch,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.INTAKE,
        quantity=qty,
        reference=reference or f"INTAKE:{batch.pk}",
        performed_by_id=_user_id(user),
    )

    logger.info(
        "Stock registered",
        extra={
            "batch_id": batch.pk,
            "vehicle_id": str(batch.vehicle_id),
            "color": batch.color,
            "owner_type": owner.owner_type,
            "owner_id": str(owner.owner_id),
            "quantity": qty,
        },
    )
    return batch


# ============================================================
# FIFO ALLOCATION
# ============================================================

def _consume_fifo(
    *,
    vehicle,
    owner: Owner,
    color: str,
    quantity: int,
    reason: str,
    reference: str,
    user=None,
) -> list[AllocationLine]:
    batches = list(
        _batches_qs(vehicle=vehicle, owner=owner, color=color)
        .select_for_update()
        .order_by("received_at", "id")
    )

    total_available = sum(int(b.remaining_quantity or 0) for b in batches)
    if total_available < quantity:
        raise InsufficientStock(
            requested=quantity,
            available=total_available,
            vehicle_id=getattr(vehicle, "pk", vehicle),
            color=color,
            owner_type=owner.owner_type,
            owner_id=owner.owner_id,
        )

    lines: list[AllocationLine] = []
    remaining_qty = quantity

    for batch in batches:
        if remaining_qty <= 0:
            break

        available = int(batch.remaining_quantity or 0)
        if available <= 0:
            continue

        consumed = available if available <= remaining_qty else remaining_qty

        # Conditional update: only succeeds if nobody changed the batch since we read it.
        updated = StockBatch.objects.filter(
            pk=batch.pk,
            remaining_quantity=available,
        ).update(remaining_quantity=F("remaining_quantity") - consumed)
        if updated != 1:
            raise ConcurrentModification(
                f"Stock batch {batch.pk} changed during allocation",
                batch_id=batch.pk,
            )

        StockMovement.objects.create(
            batch=batch,
            movement_type=StockMovement.MovementType.OUT,
            reason=reason,
            quantity=consumed,
            reference=reference,
            performed_by_id=_user_id(user),
        )

        lines.append(AllocationLine(batch_id=batch.pk, quantity=consumed))
        remaining_qty -= consumed

    return lines


@retry_on_conflict
@transaction.atomic
def allocate(
    *,
    vehicle,
    owner: Owner,
    quantity,
    color: Optional[str] = None,
    reference: str,
    user=None,
) -> list[AllocationLine]:
    """
    Consume `quantity` units oldest-first.

    Returns the (batch_id, quantity) lines actually consumed; their sum is
    always exactly `quantity`. Raises InsufficientStock without touching
    any batch when matching batches cannot cover the request.
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise LedgerValidationError("quantity must be greater than zero")
    if not (reference or "").strip():
        raise LedgerValidationError("reference is required for allocation")

    lines = _consume_fifo(
        vehicle=vehicle,
        owner=owner,
        color=_clean_color(color),
        quantity=qty,
        reason=StockMovement.Reason.ALLOCATION,
        reference=reference,
        user=user,
    )

    logger.info(
        "Stock allocated",
        extra={
            "reference": reference,
            "vehicle_id": str(getattr(vehicle, "pk", vehicle)),
            "quantity": qty,
            "lines": [(ln.batch_id, ln.quantity) for ln in lines],
        },
    )
    return lines


# ============================================================
# TRANSFER
# ============================================================

@retry_on_conflict
@transaction.atomic
def transfer(
    *,
    vehicle,
    color: str,
    from_owner: Owner,
    to_owner: Owner,
    quantity,
    unit_cost=None,
    reference: str = "",
    user=None,
) -> TransferResult:
    """
    Move stock between owners.

    The caller's transaction owns atomicity with any ledger write that must
    accompany the transfer (e.g. dealer debt increase).
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise LedgerValidationError("quantity must be greater than zero")
    if from_owner == to_owner:
        raise LedgerValidationError("Cannot transfer stock to the same owner")

    c = _clean_color(color)
    now = timezone.now()

    st = StockTransfer.objects.create(
        vehicle_id=getattr(vehicle, "pk", vehicle),
        color=c,
        from_owner_type=from_owner.owner_type,
        from_owner_id=from_owner.owner_id,
        to_owner_type=to_owner.owner_type,
        to_owner_id=to_owner.owner_id,
        quantity=qty,
        unit_cost=_money(unit_cost) if unit_cost is not None else None,
        reference=reference,
        performed_by_id=_user_id(user),
        transferred_at=now,
    )
    ref = f"TRANSFER:{st.pk}"

    consumed = _consume_fifo(
        vehicle=vehicle,
        owner=from_owner,
        color=c,
        quantity=qty,
        reason=StockMovement.Reason.TRANSFER_OUT,
        reference=ref,
        user=user,
    )

    batch = StockBatch(
        vehicle_id=st.vehicle_id,
        color=c,
        owner_type=to_owner.owner_type,
        owner_id=to_owner.owner_id,
        quantity=qty,
        remaining_quantity=qty,
        unit_cost=st.unit_cost,
        received_at=now,
        source_transfer=st,
    )
    batch.full_clean()
    batch.save()

    StockMovement.objects.create(
        batch=batch,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.TRANSFER_IN,
        quantity=qty,
        reference=ref,
        performed_by_id=_user_id(user),
    )

    logger.info(
        "Stock transferred",
        extra={
            "transfer_id": str(st.pk),
            "vehicle_id": str(st.vehicle_id),
            "color": c,
            "quantity": qty,
            "from": f"{from_owner.owner_type}:{from_owner.owner_id}",
            "to": f"{to_owner.owner_type}:{to_owner.owner_id}",
            "new_batch_id": batch.pk,
        },
    )
    return TransferResult(transfer=st, batch=batch, consumed=consumed)


# ============================================================
# REVERSAL (COMPENSATION)
# ============================================================

def _normalize_lines(lines: Iterable) -> dict[int, int]:
    """
    Accepts AllocationLine, (batch_id, qty) tuples or objects with
    batch_id/quantity attributes (e.g. orders.UsedStock rows).
    """
    merged: dict[int, int] = defaultdict(int)
    for line in lines:
        if isinstance(line, (tuple, list)):
            batch_id, qty = line
        else:
            batch_id, qty = line.batch_id, line.quantity
        q = _to_int_qty(qty)
        if q <= 0:
            raise LedgerValidationError("reversal quantity must be greater than zero")
        merged[int(batch_id)] += q
    return dict(merged)


@retry_on_conflict
@transaction.atomic
def reverse(*, lines: Iterable, reference: str, user=None) -> list[AllocationLine]:
    """
    Restore previously allocated quantities.

    Exact inverse of allocate(reference=...):
    - a reference can be reversed once (StockAlreadyReversed on repeat)
    - a batch cannot get back more than was allocated to it under the reference
    """
    if not (reference or "").strip():
        raise LedgerValidationError("reference is required for reversal")

    merged = _normalize_lines(lines)
    if not merged:
        return []

    if StockMovement.objects.filter(
        reference=reference,
        reason=StockMovement.Reason.REVERSAL,
    ).exists():
        raise StockAlreadyReversed(
            f"Allocation {reference} has already been reversed",
            reference=reference,
        )

    allocated = {
        row["batch_id"]: int(row["total"] or 0)
        for row in StockMovement.objects.filter(
            reference=reference,
            reason=StockMovement.Reason.ALLOCATION,
        )
        .values("batch_id")
        .annotate(total=Sum("quantity"))
    }

    restored: list[AllocationLine] = []

    # Lock in id order to keep lock acquisition deterministic.
    for batch in StockBatch.objects.select_for_update().filter(pk__in=merged.keys()).order_by("id"):
        qty = merged[batch.pk]
        if qty > allocated.get(batch.pk, 0):
            raise LedgerValidationError(
                f"Cannot reverse {qty} units on batch {batch.pk}: only "
                f"{allocated.get(batch.pk, 0)} allocated under {reference}",
                batch_id=batch.pk,
            )

        current = int(batch.remaining_quantity or 0)
        updated = StockBatch.objects.filter(
            pk=batch.pk,
            remaining_quantity=current,
        ).update(remaining_quantity=F("remaining_quantity") + qty)
        if updated != 1:
            raise ConcurrentModification(
                f"Stock batch {batch.pk} changed during reversal",
                batch_id=batch.pk,
            )

        StockMovement.objects.create(
            batch=batch,
            movement_type=StockMovement.MovementType.IN,
            reason=StockMovement.Reason.REVERSAL,
            quantity=qty,
            reference=reference,
            performed_by_id=_user_id(user),
        )
        restored.append(AllocationLine(batch_id=batch.pk, quantity=qty))

    missing = set(merged) - {ln.batch_id for ln in restored}
    if missing:
        raise LedgerValidationError(f"Unknown stock batches: {sorted(missing)}")

    logger.info(
        "Stock allocation reversed",
        extra={"reference": reference, "lines": [(ln.batch_id, ln.quantity) for ln in restored]},
    )
    return restored
