# orders/tests/test_end_to_end.py

from decimal import Decimal

from django.db.models import Sum
from django.test import TestCase, override_settings

from core.tests.fixtures import (
    actor_for,
    make_customer,
    make_dealership,
    make_manufacturer,
    make_user,
    make_vehicle,
    stock,
)
from debts.models import DealerManufacturerDebt
from inventory.services.stock_ledger import Owner, available_quantity
from orders.models import Order
from orders.services.order_state_machine import cancel_order, create_order
from orders.services.payment_service import record_payment
from permissions.roles import Role
from replenishment.services.request_workflow import (
    approve_order_request,
    approve_vehicle_request,
    create_order_request,
)


@override_settings(ORDER_DEPOSIT_MIN_RATIO=Decimal("0.10"))
class DealerSupplyChainScenarioTests(TestCase):
    """
    Manufacturer → dealer → customer, end to end.

    GUARANTEES:
    - distributed units land in dealer stock and in dealer debt
    - customer orders consume dealer stock FIFO
    - customer payments settle dealer debt and
      sum(settled_by_orders) == total - remaining at every step
    """

    def setUp(self):
        self.mfr = make_manufacturer()
        self.dealer = make_dealership()
        self.vehicle = make_vehicle(self.mfr, price="100.00")

        self.manager = actor_for(make_user(role=Role.DEALER_MANAGER, dealership=self.dealer))
        self.evm = actor_for(make_user(role=Role.EVM_STAFF, manufacturer=self.mfr))

        self.mfr_owner = Owner.manufacturer(self.mfr)
        self.dealer_owner = Owner.dealer(self.dealer)
        stock(self.vehicle, self.mfr_owner, 50)

    def _debt(self):
        return DealerManufacturerDebt.objects.get(dealership=self.dealer, manufacturer=self.mfr)

    def assertInvariant(self):
        debt = self._debt()
        settled = debt.settled_by_orders.aggregate(total=Sum("amount"))["total"] or Decimal("0.00")
        self.assertEqual(settled, debt.total_amount - debt.remaining_amount)
        return debt

    def _distribute(self, quantity):
        req = create_order_request(
            actor=self.manager,
            dealership=self.dealer,
            items=[{"vehicle": self.vehicle, "color": "Red", "quantity": quantity}],
        )
        result = approve_order_request(actor=self.manager, order_request=req)
        for rv in result.created:
            approve_vehicle_request(actor=self.evm, request_vehicle=rv)

    def _order(self, quantity):
        return create_order(
            actor=self.manager,
            customer=make_customer(self.dealer),
            dealership=self.dealer,
            items=[{"vehicle": self.vehicle, "color": "Red", "quantity": quantity}],
        )

    def test_full_supply_chain(self):
        self._distribute(10)

        self.assertEqual(available_quantity(vehicle=self.vehicle, owner=self.dealer_owner), 10)
        self.assertEqual(available_quantity(vehicle=self.vehicle, owner=self.mfr_owner), 40)
        debt = self.assertInvariant()
        self.assertEqual(debt.total_amount, Decimal("1000.00"))
        self.assertEqual(debt.remaining_amount, Decimal("1000.00"))

        order_a = self._order(4)
        order_b = self._order(3)

        # A: deposit only
        record_payment(actor=self.manager, order=order_a, amount="40")
        order_a.refresh_from_db()
        self.assertEqual(order_a.status, Order.STATUS_VEHICLE_READY)
        debt = self.assertInvariant()
        self.assertEqual(debt.remaining_amount, Decimal("960.00"))

        # B: paid in full at once
        record_payment(actor=self.manager, order=order_b, amount="300")
        order_b.refresh_from_db()
        self.assertEqual(order_b.status, Order.STATUS_FULLY_PAID)
        debt = self.assertInvariant()
        self.assertEqual(debt.remaining_amount, Decimal("660.00"))

        self.assertEqual(available_quantity(vehicle=self.vehicle, owner=self.dealer_owner), 3)

        # A: balance
        record_payment(actor=self.manager, order=order_a, amount="360")
        order_a.refresh_from_db()
        self.assertEqual(order_a.status, Order.STATUS_FULLY_PAID)
        debt = self.assertInvariant()
        self.assertEqual(debt.remaining_amount, Decimal("300.00"))

        by_order = dict(
            debt.settled_by_orders
            .order_by()
            .values("order_code")
            .annotate(total=Sum("amount"))
            .values_list("order_code", "total")
        )
        self.assertEqual(by_order, {order_a.code: Decimal("400.00"), order_b.code: Decimal("300.00")})

    def test_cancel_returns_units_but_keeps_settlements(self):
        self._distribute(5)
        order = self._order(2)

        record_payment(actor=self.manager, order=order, amount="50")
        self.assertEqual(available_quantity(vehicle=self.vehicle, owner=self.dealer_owner), 3)

        cancel_order(actor=self.manager, order=order, reason="Financing declined")

        self.assertEqual(available_quantity(vehicle=self.vehicle, owner=self.dealer_owner), 5)
        debt = self.assertInvariant()
        self.assertEqual(debt.remaining_amount, Decimal("450.00"))
