# orders/services/payment_service.py

"""
CUSTOMER PAYMENT SERVICE

One call records a customer payment end-to-end, in one transaction:

1. Apply the amount to the order's CustomerDebt (Overpayment guard).
2. Write the immutable Payment receipt and bump order.paid_amount.
3. Route part of the payment to the dealer's manufacturer debts
   (proportional to the manufacturer cost of the order's vehicles).
4. Drive the payment-triggered status transitions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Sum

from core.codes import generate_code
from core.concurrency import retry_on_conflict
from core.exceptions import DebtNotFound, DuplicateSettlement, InvalidStatusTransition, LedgerValidationError
from core.money import ZERO, _money
from debts.models import DebtSettlement
from debts.services.debt_ledger import (
    apply_payment,
    get_customer_debt,
    get_dealer_debt,
    settle_dealer_debt_from_customer_payment,
)
from orders.models import Order, Payment
from orders.services.order_lifecycle import TERMINAL_STATES
from orders.services.order_state_machine import _lock_order, advance_after_payment
from permissions.roles import ActorContext

logger = logging.getLogger("orders")


@dataclass
class PaymentOutcome:
    order: Order
    payment: Payment
    settlements: list = field(default_factory=list)


def _manufacturer_costs(order: Order) -> dict:
    """
    manufacturer_id -> (distribution cost, units) for the order's items.
    Cost uses the catalog price, which is what distribution charged.
    """
    costs: dict = {}
    for item in order.items.select_related("vehicle"):
        m_id = item.vehicle.manufacturer_id
        cost, qty = costs.get(m_id, (ZERO, 0))
        costs[m_id] = (_money(cost + item.vehicle.price * item.quantity), qty + item.quantity)
    return costs


def settle_manufacturer_debts(*, order: Order, payment: Payment) -> list[DebtSettlement]:
    """
    Settlement target per manufacturer is cost × min(1, paid / final);
    the part not yet settled for this order is taken from this payment.
    """
    final = _money(order.final_amount)
    if final <= ZERO:
        return []

    ratio = min(Decimal("1"), _money(order.paid_amount) / final)
    budget = _money(payment.amount)
    settled: list[DebtSettlement] = []

    for m_id, (cost, qty) in sorted(_manufacturer_costs(order).items(), key=lambda kv: str(kv[0])):
        if budget <= ZERO:
            break

        try:
            debt = get_dealer_debt(dealership=order.dealership_id, manufacturer=m_id)
        except DebtNotFound:
            logger.info(
                "No dealer debt for manufacturer; settlement skipped",
                extra={"order_code": order.code, "manufacturer_id": str(m_id)},
            )
            continue

        target = cost if ratio >= 1 else _money(cost * ratio)
        already = (
            DebtSettlement.objects
            .filter(order=order, debt=debt)
            .aggregate(total=Sum("amount"))["total"]
            or ZERO
        )
        due = min(_money(target - already), budget)
        if due <= ZERO:
            continue

        try:
            rows = settle_dealer_debt_from_customer_payment(
                debt=debt,
                amount=due,
                payment=payment,
                order=order,
                quantity_sold=qty,
            )
        except DuplicateSettlement:
            logger.info(
                "Payment already settled dealer debt",
                extra={"order_code": order.code, "payment_reference": payment.reference},
            )
            continue

        budget = _money(budget - sum((r.amount for r in rows), ZERO))
        settled.extend(rows)

    return settled


@retry_on_conflict
@transaction.atomic
def record_payment(
    *,
    actor: Optional[ActorContext] = None,
    order,
    amount,
    method: str = "",
    reference: str = "",
    note: str = "",
) -> PaymentOutcome:
    actor = actor or ActorContext.system()
    order = _lock_order(order)

    if order.status in TERMINAL_STATES:
        raise InvalidStatusTransition(
            f"Order {order.code} is {order.status}; payments are closed",
            order_id=order.pk,
            from_status=order.status,
        )

    method = method or order.payment_method
    if method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise LedgerValidationError(f"Unknown payment method: {method}")

    reference = (reference or "").strip() or generate_code("PAY")
    if Payment.objects.filter(reference=reference).exists():
        raise DuplicateSettlement(f"Payment {reference} already recorded", payment_reference=reference)

    amt = _money(amount)
    debt = get_customer_debt(order=order)
    apply_payment(debt=debt, amount=amt)

    payment = Payment.objects.create(
        order=order,
        amount=amt,
        method=method,
        reference=reference,
        note=note or "",
        paid_by_id=actor.user_id,
    )

    order.paid_amount = _money(order.paid_amount + amt)
    order.save(update_fields=["paid_amount", "updated_at"])

    settlements = settle_manufacturer_debts(order=order, payment=payment)

    payment_info = {
        "payment_id": str(payment.pk),
        "amount": str(amt),
        "method": method,
        "reference": reference,
    }
    advance_after_payment(order=order, actor=actor, payment_info=payment_info)

    logger.info(
        "Customer payment recorded",
        extra={
            "order_code": order.code,
            "payment_reference": reference,
            "amount": str(amt),
            "paid_total": str(order.paid_amount),
            "order_status": order.status,
            "settlement_rows": len(settlements),
        },
    )
    return PaymentOutcome(order=order, payment=payment, settlements=settlements)
