from decimal import Decimal

from django.test import SimpleTestCase

from orders.models import Order
from orders.services.order_lifecycle import (
    NON_CANCELLABLE_STATES,
    TERMINAL_STATES,
    can_transition,
    deposit_threshold,
    has_qualifying_deposit,
)


class OrderLifecycleRuleTests(SimpleTestCase):
    """
    Pure transition table.

    GUARANTEES:
    - Forward path is the only path
    - Terminal states are final
    - Cancellation only before delivery
    """

    def test_forward_path(self):
        path = [
            Order.STATUS_PENDING,
            Order.STATUS_DEPOSIT_PAID,
            Order.STATUS_VEHICLE_READY,
            Order.STATUS_FULLY_PAID,
            Order.STATUS_DELIVERED,
            Order.STATUS_COMPLETED,
        ]
        for src, dst in zip(path, path[1:]):
            self.assertTrue(can_transition(from_status=src, to_status=dst), f"{src} -> {dst}")

    def test_waiting_branch(self):
        self.assertTrue(
            can_transition(from_status=Order.STATUS_DEPOSIT_PAID, to_status=Order.STATUS_WAITING_VEHICLE_REQUEST)
        )
        self.assertTrue(
            can_transition(from_status=Order.STATUS_WAITING_VEHICLE_REQUEST, to_status=Order.STATUS_VEHICLE_READY)
        )

    def test_skipping_steps_is_refused(self):
        self.assertFalse(can_transition(from_status=Order.STATUS_PENDING, to_status=Order.STATUS_VEHICLE_READY))
        self.assertFalse(can_transition(from_status=Order.STATUS_VEHICLE_READY, to_status=Order.STATUS_DELIVERED))
        self.assertFalse(can_transition(from_status=Order.STATUS_PENDING, to_status=Order.STATUS_COMPLETED))

    def test_terminal_states_are_final(self):
        for terminal in TERMINAL_STATES:
            for _, target in Order.STATUS_CHOICES:
                self.assertFalse(can_transition(from_status=terminal, to_status=target))

    def test_cancel_allowed_only_before_delivery(self):
        for status, _ in Order.STATUS_CHOICES:
            allowed = can_transition(from_status=status, to_status=Order.STATUS_CANCELLED)
            self.assertEqual(allowed, status not in NON_CANCELLABLE_STATES, status)

    def test_deposit_threshold(self):
        self.assertEqual(deposit_threshold(final_amount="1000", ratio="0.10"), Decimal("100.00"))

        order = Order(final_amount=Decimal("1000.00"), paid_amount=Decimal("99.99"))
        self.assertFalse(has_qualifying_deposit(order=order, ratio=Decimal("0.10")))

        order.paid_amount = Decimal("100.00")
        self.assertTrue(has_qualifying_deposit(order=order, ratio=Decimal("0.10")))

    def test_zero_payment_never_qualifies(self):
        order = Order(final_amount=Decimal("0.00"), paid_amount=Decimal("0.00"))
        self.assertFalse(has_qualifying_deposit(order=order, ratio=Decimal("0")))
