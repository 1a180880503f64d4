# orders/tests/test_order_api.py

from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.tests.fixtures import make_customer, make_dealership, make_manufacturer, make_user, make_vehicle, stock
from inventory.services.stock_ledger import Owner
from orders.models import Order
from permissions.roles import Role

ORDERS_URL = "/api/orders/"


class OrderApiTests(TestCase):
    """
    Order endpoints.

    GUARANTEES:
    - engine errors render as {"error": {code, message}} with a stable status
    - capabilities gate every action
    - dealer users only ever see their own dealership's orders
    """

    def setUp(self):
        self.client = APIClient()

        self.dealer = make_dealership()
        self.mfr = make_manufacturer()
        self.vehicle = make_vehicle(self.mfr, price="1000.00")
        self.customer = make_customer(self.dealer)

        self.staff = make_user(role=Role.DEALER_STAFF, dealership=self.dealer)
        self.manager = make_user(role=Role.DEALER_MANAGER, dealership=self.dealer)
        self.evm = make_user(role=Role.EVM_STAFF, manufacturer=self.mfr)

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _as(self, user):
        self.client.force_authenticate(user=user)

    def _create(self, quantity=1):
        self._as(self.staff)
        res = self.client.post(
            ORDERS_URL,
            {
                "customer": str(self.customer.pk),
                "payment_method": "bank",
                "items": [{"vehicle": str(self.vehicle.pk), "color": "Red", "quantity": quantity}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        return res.data

    def _url(self, order_id, action=""):
        return f"{ORDERS_URL}{order_id}/" + (f"{action}/" if action else "")

    # --------------------------------------------------
    # CREATE / READ
    # --------------------------------------------------

    def test_create_defaults_to_own_dealership(self):
        data = self._create(quantity=2)

        self.assertEqual(data["status"], Order.STATUS_PENDING)
        self.assertEqual(Decimal(data["final_amount"]), Decimal("2000.00"))
        self.assertEqual(len(data["items"]), 1)
        self.assertEqual(str(Order.objects.get(pk=data["id"]).dealership_id), str(self.dealer.pk))

    def test_cannot_create_for_other_dealership(self):
        other = make_dealership()
        self._as(self.staff)

        res = self.client.post(
            ORDERS_URL,
            {
                "customer": str(self.customer.pk),
                "dealership": str(other.pk),
                "items": [{"vehicle": str(self.vehicle.pk), "color": "Red", "quantity": 1}],
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["error"]["code"], "FORBIDDEN_DEALERSHIP")

    def test_other_dealership_cannot_see_order(self):
        data = self._create()
        outsider = make_user(role=Role.DEALER_MANAGER, dealership=make_dealership())
        self._as(outsider)

        self.assertEqual(self.client.get(self._url(data["id"])).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get(ORDERS_URL).data["count"], 0)

    def test_manufacturer_staff_denied(self):
        self._as(self.evm)
        self.assertEqual(self.client.get(ORDERS_URL).status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_denied(self):
        self.assertEqual(self.client.get(ORDERS_URL).status_code, status.HTTP_401_UNAUTHORIZED)

    # --------------------------------------------------
    # PAYMENTS
    # --------------------------------------------------

    def test_payment_drives_status(self):
        stock(self.vehicle, Owner.dealer(self.dealer), 1)
        data = self._create()

        res = self.client.post(self._url(data["id"], "payments"), {"amount": "1000.00"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["order"]["status"], Order.STATUS_FULLY_PAID)
        self.assertEqual(res.data["payment"]["method"], "bank")

        history = self.client.get(self._url(data["id"], "payments"))
        self.assertEqual(len(history.data), 1)

    def test_overpayment_maps_to_400(self):
        data = self._create()

        res = self.client.post(self._url(data["id"], "payments"), {"amount": "1000.01"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "OVERPAYMENT")

    # --------------------------------------------------
    # STATE MACHINE COMMANDS
    # --------------------------------------------------

    def test_invalid_transition_maps_to_409(self):
        data = self._create()

        res = self.client.post(self._url(data["id"], "deliver"), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "INVALID_STATUS_TRANSITION")
        self.assertEqual(res.data["error"]["details"]["from_status"], Order.STATUS_PENDING)

    def test_retry_allocation_shortage_maps_to_409(self):
        data = self._create()
        self.client.post(self._url(data["id"], "payments"), {"amount": "100.00"}, format="json")

        res = self.client.post(self._url(data["id"], "retry-allocation"), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "INSUFFICIENT_STOCK")

    def test_cancel_requires_capability(self):
        data = self._create()

        res = self.client.post(self._url(data["id"], "cancel"), {"reason": "x"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self._as(self.manager)
        res = self.client.post(self._url(data["id"], "cancel"), {"reason": "Customer left"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], Order.STATUS_CANCELLED)

    def test_status_logs(self):
        stock(self.vehicle, Owner.dealer(self.dealer), 1)
        data = self._create()
        self.client.post(self._url(data["id"], "payments"), {"amount": "1000.00"}, format="json")

        res = self.client.get(self._url(data["id"], "status-logs"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [row["new_status"] for row in res.data],
            [
                Order.STATUS_PENDING,
                Order.STATUS_DEPOSIT_PAID,
                Order.STATUS_VEHICLE_READY,
                Order.STATUS_FULLY_PAID,
            ],
        )
