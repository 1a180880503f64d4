# debts/services/debt_ledger.py

"""
DEBT LEDGER (APPLICATION SERVICE)

One payment-application algorithm for both debt kinds:
- reject amount <= 0
- reject amount > remaining (Overpayment, nothing written)
- paid += amount; remaining = total - paid; status derived

Dealer → manufacturer debt:
- increase_by_distribution: upsert the (dealer, manufacturer) row and
  append one DebtObligation per distribution event.
- settlement (customer-payment driven or direct): clears obligations
  oldest-first and writes one DebtSettlement per obligation touched, so
      sum(settled_by_orders.amount) == total_amount - remaining_amount
  holds after every committed call.

Every debt row is locked (select_for_update) before it is read for a
mutation: one writer per debt at a time.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.concurrency import retry_on_conflict
from core.exceptions import (
    DebtNotFound,
    DuplicateSettlement,
    EngineError,
    LedgerValidationError,
    Overpayment,
)
from core.money import ZERO, _money
from debts.models import (
    CustomerDebt,
    DealerDebtPayment,
    DealerManufacturerDebt,
    DebtAccount,
    DebtObligation,
    DebtSettlement,
)

logger = logging.getLogger("debts")


def _pk(obj):
    return getattr(obj, "pk", obj)


def _lock(debt: DebtAccount) -> DebtAccount:
    return type(debt).objects.select_for_update().get(pk=debt.pk)


def _sync(target: DebtAccount, source: DebtAccount) -> None:
    for f in ("total_amount", "paid_amount", "remaining_amount", "status", "updated_at"):
        setattr(target, f, getattr(source, f))


# ============================================================
# SHARED PAYMENT APPLICATION
# ============================================================

@retry_on_conflict
@transaction.atomic
def apply_payment(*, debt: DebtAccount, amount) -> DebtAccount:
    amt = _money(amount)
    if amt <= ZERO:
        raise LedgerValidationError("Payment amount must be > 0")

    locked = _lock(debt)

    if locked.status == DebtAccount.STATUS_VOID:
        raise LedgerValidationError("Cannot apply a payment to a void debt")

    if amt > locked.remaining_amount:
        logger.warning(
            "Overpayment rejected",
            extra={
                "debt_id": str(locked.pk),
                "amount": str(amt),
                "remaining": str(locked.remaining_amount),
            },
        )
        raise Overpayment(
            f"Payment {amt} exceeds remaining balance {locked.remaining_amount}",
            amount=amt,
            remaining=locked.remaining_amount,
        )

    locked.paid_amount = _money(locked.paid_amount + amt)
    locked.remaining_amount = _money(locked.total_amount - locked.paid_amount)
    locked.status = locked.derive_status(
        paid_amount=locked.paid_amount,
        remaining_amount=locked.remaining_amount,
    )
    locked.save(update_fields=["paid_amount", "remaining_amount", "status", "updated_at"])

    _sync(debt, locked)
    return locked


# ============================================================
# CUSTOMER DEBT
# ============================================================

def open_customer_debt(*, order) -> CustomerDebt:
    total = _money(order.final_amount)
    status = CustomerDebt.derive_status(paid_amount=ZERO, remaining_amount=total)
    return CustomerDebt.objects.create(
        customer_id=order.customer_id,
        dealership_id=order.dealership_id,
        order=order,
        total_amount=total,
        paid_amount=ZERO,
        remaining_amount=total,
        status=status,
    )


def get_customer_debt(*, order, lock: bool = False) -> CustomerDebt:
    qs = CustomerDebt.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(order_id=_pk(order))
    except CustomerDebt.DoesNotExist as exc:
        raise DebtNotFound(f"No customer debt for order {_pk(order)}", order_id=_pk(order)) from exc


@retry_on_conflict
@transaction.atomic
def void_customer_debt(*, order) -> CustomerDebt:
    """
    Cancellation: the debt stops being collectable.
    total/paid are kept for audit; remaining is forced to zero.
    """
    debt = get_customer_debt(order=order, lock=True)
    debt.remaining_amount = ZERO
    debt.status = CustomerDebt.STATUS_VOID
    debt.save(update_fields=["remaining_amount", "status", "updated_at"])
    logger.info("Customer debt voided", extra={"debt_id": str(debt.pk), "order_id": str(debt.order_id)})
    return debt


# ============================================================
# DEALER → MANUFACTURER DEBT
# ============================================================

def get_dealer_debt(*, dealership, manufacturer, lock: bool = False) -> DealerManufacturerDebt:
    qs = DealerManufacturerDebt.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(dealership_id=_pk(dealership), manufacturer_id=_pk(manufacturer))
    except DealerManufacturerDebt.DoesNotExist as exc:
        raise DebtNotFound(
            "No debt between dealership and manufacturer",
            dealership_id=_pk(dealership),
            manufacturer_id=_pk(manufacturer),
        ) from exc


@retry_on_conflict
@transaction.atomic
def increase_by_distribution(
    *,
    dealership,
    manufacturer,
    amount,
    reference: str,
    vehicle=None,
    quantity: int = 0,
) -> DealerManufacturerDebt:
    """
    Upsert the aggregated (dealer, manufacturer) debt and record the
    distribution as a new FIFO obligation.
    """
    amt = _money(amount)
    if amt <= ZERO:
        raise LedgerValidationError("Distribution amount must be > 0")
    if not (reference or "").strip():
        raise LedgerValidationError("reference is required")

    try:
        with transaction.atomic():
            debt, created = (
                DealerManufacturerDebt.objects
                .select_for_update()
                .get_or_create(
                    dealership_id=_pk(dealership),
                    manufacturer_id=_pk(manufacturer),
                )
            )
    except IntegrityError:
        # Lost the insert race: the row exists now.
        debt, created = get_dealer_debt(dealership=dealership, manufacturer=manufacturer, lock=True), False

    debt.total_amount = _money(debt.total_amount + amt)
    debt.remaining_amount = _money(debt.remaining_amount + amt)
    # new goods reopen the account even when part of it was already paid
    debt.status = DealerManufacturerDebt.STATUS_OPEN
    debt.save(update_fields=["total_amount", "remaining_amount", "status", "updated_at"])

    DebtObligation.objects.create(
        debt=debt,
        amount=amt,
        vehicle_id=_pk(vehicle) if vehicle is not None else None,
        quantity=int(quantity or 0),
        source_reference=reference,
    )

    logger.info(
        "Dealer debt increased by distribution",
        extra={
            "debt_id": str(debt.pk),
            "debt_created": created,
            "amount": str(amt),
            "reference": reference,
            "total": str(debt.total_amount),
            "remaining": str(debt.remaining_amount),
        },
    )
    return debt


def _settle_obligations_fifo(
    *,
    debt: DealerManufacturerDebt,
    amount: Decimal,
    payment_reference: str,
    order=None,
    payment=None,
    quantity_sold: int = 0,
) -> list[DebtSettlement]:
    left = amount
    settlements: list[DebtSettlement] = []
    now = timezone.now()

    obligations = (
        DebtObligation.objects
        .select_for_update()
        .filter(debt=debt, settled_amount__lt=F("amount"))
        .order_by("created_at", "id")
    )

    for ob in obligations:
        if left <= ZERO:
            break

        take = min(ob.open_amount, left)
        if take <= ZERO:
            continue

        ob.settled_amount = _money(ob.settled_amount + take)
        ob.save(update_fields=["settled_amount"])

        settlements.append(
            DebtSettlement.objects.create(
                debt=debt,
                obligation=ob,
                order_id=_pk(order) if order is not None else None,
                order_code=getattr(order, "code", "") or "",
                payment_id=_pk(payment) if payment is not None else None,
                payment_reference=payment_reference,
                quantity_sold=int(quantity_sold or 0),
                amount=take,
                settled_at=now,
            )
        )
        left = _money(left - take)

    if left > ZERO:
        # Obligations no longer cover the remaining balance: ledger is corrupt.
        logger.error(
            "Obligations do not cover dealer debt balance",
            extra={"debt_id": str(debt.pk), "uncovered": str(left)},
        )
        raise EngineError(
            f"Dealer debt {debt.pk} obligations do not cover the remaining balance",
            debt_id=debt.pk,
        )

    return settlements


@retry_on_conflict
@transaction.atomic
def settle_dealer_debt_from_customer_payment(
    *,
    debt: DealerManufacturerDebt,
    amount,
    payment=None,
    payment_reference: str = "",
    order=None,
    quantity_sold: int = 0,
) -> list[DebtSettlement]:
    """
    Use (part of) a customer payment to reduce the dealer's manufacturer debt.

    - capped at debt.remaining_amount (never over-settles)
    - FIFO across obligations
    - a payment reference settles a given debt at most once
    """
    ref = (payment_reference or getattr(payment, "reference", "") or "").strip()
    if not ref:
        raise LedgerValidationError("payment reference is required for settlement")

    amt = _money(amount)
    if amt <= ZERO:
        raise LedgerValidationError("Settlement amount must be > 0")

    locked = _lock(debt)

    if DebtSettlement.objects.filter(debt=locked, payment_reference=ref).exists():
        raise DuplicateSettlement(
            f"Payment {ref} has already settled this debt",
            payment_reference=ref,
            debt_id=locked.pk,
        )

    capped = min(amt, _money(locked.remaining_amount))
    if capped <= ZERO:
        logger.info(
            "Dealer debt already settled; nothing to apply",
            extra={"debt_id": str(locked.pk), "payment_reference": ref},
        )
        return []

    settlements = _settle_obligations_fifo(
        debt=locked,
        amount=capped,
        payment_reference=ref,
        order=order,
        payment=payment,
        quantity_sold=quantity_sold,
    )
    apply_payment(debt=locked, amount=capped)
    _sync(debt, locked)

    logger.info(
        "Dealer debt settled from customer payment",
        extra={
            "debt_id": str(locked.pk),
            "payment_reference": ref,
            "order_code": getattr(order, "code", None),
            "requested": str(amt),
            "applied": str(capped),
            "remaining": str(locked.remaining_amount),
        },
    )
    return settlements


@retry_on_conflict
@transaction.atomic
def apply_dealer_payment(
    *,
    debt: DealerManufacturerDebt,
    amount,
    reference: str,
    method: str = "bank",
    note: str = "",
    user=None,
) -> DealerDebtPayment:
    """
    Direct dealer → manufacturer payment. Not capped: paying more than the
    remaining balance is an Overpayment.
    """
    ref = (reference or "").strip()
    if not ref:
        raise LedgerValidationError("reference is required")

    amt = _money(amount)
    if amt <= ZERO:
        raise LedgerValidationError("Payment amount must be > 0")

    locked = _lock(debt)
    if amt > locked.remaining_amount:
        raise Overpayment(
            f"Payment {amt} exceeds remaining balance {locked.remaining_amount}",
            amount=amt,
            remaining=locked.remaining_amount,
        )

    if DealerDebtPayment.objects.filter(reference=ref).exists():
        raise DuplicateSettlement(f"Payment {ref} already recorded", payment_reference=ref)

    pay = DealerDebtPayment.objects.create(
        debt=locked,
        amount=amt,
        method=method,
        reference=ref,
        note=note,
        paid_by_id=_pk(user) if user is not None else None,
    )

    _settle_obligations_fifo(debt=locked, amount=amt, payment_reference=ref)
    apply_payment(debt=locked, amount=amt)
    _sync(debt, locked)

    logger.info(
        "Direct dealer payment applied",
        extra={"debt_id": str(locked.pk), "payment_reference": ref, "amount": str(amt)},
    )
    return pay
