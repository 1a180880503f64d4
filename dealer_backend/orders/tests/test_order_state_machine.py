# orders/tests/test_order_state_machine.py

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase, override_settings

from core.exceptions import InsufficientStock, InvalidStatusTransition, LedgerValidationError
from core.tests.fixtures import (
    actor_for,
    make_customer,
    make_dealership,
    make_manufacturer,
    make_user,
    make_vehicle,
    stock,
)
from catalog.models import Accessory, Promotion, VehicleOption
from debts.models import CustomerDebt
from inventory.models import StockBatch
from inventory.services.stock_ledger import Owner
from orders.models import Order, OrderStatusLog, UsedStock
from orders.services.order_state_machine import (
    cancel_order,
    complete_order,
    confirm_delivery,
    create_order,
    retry_allocation,
)
from orders.services.payment_service import record_payment
from permissions.roles import Role
from replenishment.models import OrderRequest


class _OrderTestBase(TestCase):
    def setUp(self):
        self.mfr = make_manufacturer()
        self.dealer = make_dealership()
        self.vehicle = make_vehicle(self.mfr, price="1000.00")
        self.customer = make_customer(self.dealer)
        self.owner = Owner.dealer(self.dealer)
        self.staff = make_user(role=Role.DEALER_STAFF, dealership=self.dealer)
        self.actor = actor_for(self.staff)

    def _order(self, quantity=1, color="Red", **line):
        return create_order(
            actor=self.actor,
            customer=self.customer,
            dealership=self.dealer,
            items=[{"vehicle": self.vehicle, "color": color, "quantity": quantity, **line}],
        )

    def _transitions(self, order):
        return list(
            OrderStatusLog.objects
            .filter(order=order)
            .order_by("created_at", "id")
            .values_list("old_status", "new_status")
        )


# ======================================================
# CREATE + PRICING
# ======================================================

class CreateOrderTests(_OrderTestBase):
    """
    GUARANTEES:
    - order starts pending with exactly one creation log
    - final = sum(items), discount = subtotal - final
    - a customer debt for final_amount is opened with the order
    - customers of another dealership are refused
    """

    def test_create_order(self):
        order = self._order(quantity=2)

        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertTrue(order.code.startswith("ORD"))
        self.assertEqual(order.final_amount, Decimal("2000.00"))
        self.assertEqual(order.discount_amount, Decimal("0.00"))
        self.assertEqual(self._transitions(order), [("", Order.STATUS_PENDING)])

        log = OrderStatusLog.objects.get(order=order)
        self.assertEqual(log.changed_by_id, self.staff.pk)

        debt = CustomerDebt.objects.get(order=order)
        self.assertEqual(debt.total_amount, Decimal("2000.00"))

    def test_pricing_with_options_accessories_and_promotion(self):
        from datetime import timedelta

        from django.utils import timezone

        option = VehicleOption.objects.create(name="Premium interior", price=Decimal("200.00"))
        accessory = Accessory.objects.create(name="Wall charger", price=Decimal("100.00"))
        promo = Promotion.objects.create(
            name="Launch",
            type=Promotion.TYPE_PERCENT,
            value=Decimal("10"),
            start_date=timezone.now() - timedelta(days=1),
            end_date=timezone.now() + timedelta(days=1),
        )

        order = self._order(
            quantity=2,
            options=[option],
            accessories=[accessory],
            promotion=promo,
            discount="50",
        )

        # unit 1300, promo 130, manual 50 -> net 1120 × 2
        self.assertEqual(order.subtotal_amount, Decimal("2600.00"))
        self.assertEqual(order.final_amount, Decimal("2240.00"))
        self.assertEqual(order.discount_amount, Decimal("360.00"))

        item = order.items.get()
        self.assertEqual(item.promotion_discount, Decimal("130.00"))
        self.assertEqual([o["name"] for o in item.options], ["Premium interior"])

    def test_expired_promotion_rejected(self):
        from datetime import timedelta

        from django.utils import timezone

        promo = Promotion.objects.create(
            name="Old",
            type=Promotion.TYPE_AMOUNT,
            value=Decimal("10"),
            start_date=timezone.now() - timedelta(days=10),
            end_date=timezone.now() - timedelta(days=1),
        )
        with self.assertRaises(LedgerValidationError):
            self._order(promotion=promo)

    def test_invalid_input_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_order(customer=self.customer, dealership=self.dealer, items=[])
        with self.assertRaises(LedgerValidationError):
            self._order(color="Purple")
        with self.assertRaises(LedgerValidationError):
            self._order(quantity=0)
        self.assertFalse(Order.objects.exists())

    def test_customer_of_other_dealership_rejected(self):
        outsider = make_customer(make_dealership(), name="Le Van C")

        with self.assertRaises(LedgerValidationError):
            create_order(
                actor=self.actor,
                customer=outsider,
                dealership=self.dealer,
                items=[{"vehicle": self.vehicle, "color": "Red", "quantity": 1}],
            )
        self.assertFalse(Order.objects.exists())

    def test_colorless_item_needs_a_color_option(self):
        plain = make_vehicle(self.mfr, colors=())

        with self.assertRaises(LedgerValidationError):
            create_order(
                actor=self.actor,
                customer=self.customer,
                dealership=self.dealer,
                items=[{"vehicle": plain, "color": "", "quantity": 1}],
            )

        order = create_order(
            actor=self.actor,
            customer=self.customer,
            dealership=self.dealer,
            items=[{"vehicle": plain, "color": "Silver", "quantity": 1}],
        )
        self.assertEqual(order.items.get().color, "Silver")


# ======================================================
# PAYMENT-DRIVEN FULFILMENT
# ======================================================

@override_settings(ORDER_DEPOSIT_MIN_RATIO=Decimal("0.10"))
class FulfilmentTests(_OrderTestBase):
    """
    GUARANTEES:
    - below-threshold payment keeps the order pending
    - qualifying deposit allocates stock FIFO and reaches vehicle_ready
    - full payment reaches fully_paid
    - shortage parks the order and creates an OrderRequest
    """

    def test_small_payment_keeps_order_pending(self):
        order = self._order()
        stock(self.vehicle, self.owner, 1)

        record_payment(actor=self.actor, order=order, amount="50")

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(order.paid_amount, Decimal("50.00"))
        self.assertEqual(len(self._transitions(order)), 1)

    def test_deposit_allocates_and_reaches_vehicle_ready(self):
        old = stock(self.vehicle, self.owner, 1, minutes_ago=30)
        new = stock(self.vehicle, self.owner, 2, minutes_ago=5)
        order = self._order(quantity=2)

        record_payment(actor=self.actor, order=order, amount="200")

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_VEHICLE_READY)
        self.assertEqual(
            self._transitions(order),
            [
                ("", Order.STATUS_PENDING),
                (Order.STATUS_PENDING, Order.STATUS_DEPOSIT_PAID),
                (Order.STATUS_DEPOSIT_PAID, Order.STATUS_VEHICLE_READY),
            ],
        )

        used = {u.batch_id: u.quantity for u in UsedStock.objects.filter(item__order=order)}
        self.assertEqual(used, {old.pk: 1, new.pk: 1})

        old.refresh_from_db()
        new.refresh_from_db()
        self.assertEqual(old.remaining_quantity, 0)
        self.assertEqual(new.remaining_quantity, 1)

    def test_deposit_log_carries_payment_info(self):
        stock(self.vehicle, self.owner, 1)
        order = self._order()

        outcome = record_payment(actor=self.actor, order=order, amount="100", reference="PAY-DEP-1")

        log = OrderStatusLog.objects.get(order=order, new_status=Order.STATUS_DEPOSIT_PAID)
        self.assertEqual(log.payment_info["reference"], "PAY-DEP-1")
        self.assertEqual(log.payment_info["payment_id"], str(outcome.payment.pk))

    def test_full_payment_reaches_fully_paid(self):
        stock(self.vehicle, self.owner, 1)
        order = self._order()

        record_payment(actor=self.actor, order=order, amount="1000")

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_FULLY_PAID)
        self.assertEqual(self._transitions(order)[-1], (Order.STATUS_VEHICLE_READY, Order.STATUS_FULLY_PAID))

    def test_balance_payment_after_vehicle_ready(self):
        stock(self.vehicle, self.owner, 1)
        order = self._order()

        record_payment(actor=self.actor, order=order, amount="300")
        record_payment(actor=self.actor, order=order, amount="700")

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_FULLY_PAID)
        self.assertEqual(order.customer_debt.status, CustomerDebt.STATUS_SETTLED)

    def test_shortage_moves_to_waiting_and_requests_vehicles(self):
        batch = stock(self.vehicle, self.owner, 1)
        order = self._order(quantity=3)

        record_payment(actor=self.actor, order=order, amount="500")

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_WAITING_VEHICLE_REQUEST)
        self.assertFalse(UsedStock.objects.filter(item__order=order).exists())

        batch.refresh_from_db()
        self.assertEqual(batch.remaining_quantity, 1)

        req = OrderRequest.objects.get(order=order)
        self.assertEqual(req.status, OrderRequest.STATUS_PENDING)
        line = req.items.get()
        self.assertEqual((line.vehicle_id, line.color, line.quantity), (self.vehicle.pk, "Red", 2))

    def test_allocation_is_all_or_nothing_across_items(self):
        other = make_vehicle(self.mfr, price="500.00")
        first = stock(self.vehicle, self.owner, 1)
        order = create_order(
            actor=self.actor,
            customer=self.customer,
            dealership=self.dealer,
            items=[
                {"vehicle": self.vehicle, "color": "Red", "quantity": 1},
                {"vehicle": other, "color": "Red", "quantity": 1},
            ],
        )

        record_payment(actor=self.actor, order=order, amount="150")

        order.refresh_from_db()
        first.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_WAITING_VEHICLE_REQUEST)
        self.assertEqual(first.remaining_quantity, 1)
        self.assertEqual(
            [(i.vehicle_id, i.quantity) for i in OrderRequest.objects.get(order=order).items.all()],
            [(other.pk, 1)],
        )

    def test_retry_allocation_after_restock(self):
        order = self._order()
        record_payment(actor=self.actor, order=order, amount="100")
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_WAITING_VEHICLE_REQUEST)

        with self.assertRaises(InsufficientStock):
            retry_allocation(actor=self.actor, order=order)

        stock(self.vehicle, self.owner, 1)
        retry_allocation(actor=self.actor, order=order)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_VEHICLE_READY)

    def test_retry_allocation_requires_waiting_status(self):
        order = self._order()
        with self.assertRaises(InvalidStatusTransition):
            retry_allocation(actor=self.actor, order=order)


# ======================================================
# DELIVERY / COMPLETION / INVALID TRANSITIONS
# ======================================================

class DeliveryTests(_OrderTestBase):
    """
    GUARANTEES:
    - delivered only from fully_paid, completed only from delivered
    - a refused transition writes no log row
    """

    def _paid_order(self):
        stock(self.vehicle, self.owner, 1)
        order = self._order()
        record_payment(actor=self.actor, order=order, amount="1000")
        order.refresh_from_db()
        return order

    def test_deliver_and_complete(self):
        order = self._paid_order()

        confirm_delivery(actor=self.actor, order=order, notes="Handed over")
        complete_order(actor=self.actor, order=order)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertIsNotNone(order.delivered_at)
        self.assertIsNotNone(order.completed_at)
        self.assertEqual(
            self._transitions(order)[-2:],
            [
                (Order.STATUS_FULLY_PAID, Order.STATUS_DELIVERED),
                (Order.STATUS_DELIVERED, Order.STATUS_COMPLETED),
            ],
        )

    def test_invalid_transition_writes_no_log(self):
        order = self._order()
        before = OrderStatusLog.objects.filter(order=order).count()

        with self.assertRaises(InvalidStatusTransition):
            confirm_delivery(actor=self.actor, order=order)
        with self.assertRaises(InvalidStatusTransition):
            complete_order(actor=self.actor, order=order)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(OrderStatusLog.objects.filter(order=order).count(), before)

    def test_status_logs_are_immutable(self):
        order = self._order()
        log = OrderStatusLog.objects.get(order=order)

        log.reason = "edited"
        with self.assertRaises(RuntimeError):
            log.save()
        with self.assertRaises(RuntimeError):
            log.delete()


# ======================================================
# CANCELLATION
# ======================================================

class CancellationTests(_OrderTestBase):
    """
    GUARANTEES:
    - cancel restores every allocated unit to its batch
    - customer debt is voided
    - pending OrderRequests for the order are canceled
    - refused after delivery
    """

    def test_cancel_restores_stock_and_voids_debt(self):
        batch = stock(self.vehicle, self.owner, 2)
        order = self._order(quantity=2)
        record_payment(actor=self.actor, order=order, amount="200")

        batch.refresh_from_db()
        self.assertEqual(batch.remaining_quantity, 0)

        cancel_order(actor=self.actor, order=order, reason="Customer changed mind")

        order.refresh_from_db()
        batch.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertIsNotNone(order.cancelled_at)
        self.assertEqual(batch.remaining_quantity, 2)
        self.assertFalse(UsedStock.objects.filter(item__order=order, reversed_at__isnull=True).exists())

        debt = CustomerDebt.objects.get(order=order)
        self.assertEqual(debt.status, CustomerDebt.STATUS_VOID)

        log = OrderStatusLog.objects.filter(order=order).order_by("created_at", "id").last()
        self.assertEqual((log.old_status, log.new_status), (Order.STATUS_VEHICLE_READY, Order.STATUS_CANCELLED))
        self.assertEqual(log.reason, "Customer changed mind")

    def test_cancel_waiting_order_cancels_pending_request(self):
        order = self._order()
        record_payment(actor=self.actor, order=order, amount="100")

        cancel_order(actor=self.actor, order=order)

        req = OrderRequest.objects.get(order=order)
        self.assertEqual(req.status, OrderRequest.STATUS_CANCELED)

    def test_cancel_refused_after_delivery(self):
        stock(self.vehicle, self.owner, 1)
        order = self._order()
        record_payment(actor=self.actor, order=order, amount="1000")
        confirm_delivery(actor=self.actor, order=order)

        with self.assertRaises(InvalidStatusTransition):
            cancel_order(actor=self.actor, order=order)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_DELIVERED)
        self.assertEqual(StockBatch.objects.get(vehicle=self.vehicle).remaining_quantity, 0)

    def test_cancel_twice_refused(self):
        order = self._order()
        cancel_order(actor=self.actor, order=order)

        with self.assertRaises(InvalidStatusTransition):
            cancel_order(actor=self.actor, order=order)
