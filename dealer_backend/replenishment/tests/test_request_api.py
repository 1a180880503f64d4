# replenishment/tests/test_request_api.py

from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.tests.fixtures import make_dealership, make_manufacturer, make_user, make_vehicle, stock
from debts.models import DealerManufacturerDebt
from inventory.services.stock_ledger import Owner
from permissions.roles import Role
from replenishment.models import OrderRequest, RequestVehicle

ORDER_REQUESTS_URL = "/api/requests/order-requests/"
VEHICLE_REQUESTS_URL = "/api/requests/vehicle-requests/"


class RequestWorkflowApiTests(TestCase):
    """
    Request endpoints.

    GUARANTEES:
    - dealer staff create, dealer managers decide, manufacturers distribute
    - approve reports created and skipped items
    - repeated decisions are 409, never silent
    """

    def setUp(self):
        self.client = APIClient()
        self.dealer = make_dealership()
        self.mfr = make_manufacturer()
        self.vehicle = make_vehicle(self.mfr, price="250.00")

        self.staff = make_user(role=Role.DEALER_STAFF, dealership=self.dealer)
        self.manager = make_user(role=Role.DEALER_MANAGER, dealership=self.dealer)
        self.evm = make_user(role=Role.EVM_STAFF, manufacturer=self.mfr)

    def _create_request(self, quantity=4, color="Red"):
        self.client.force_authenticate(user=self.staff)
        res = self.client.post(
            ORDER_REQUESTS_URL,
            {"items": [{"vehicle": str(self.vehicle.pk), "color": color, "quantity": quantity}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        return res.data

    # --------------------------------------------------
    # ORDER REQUESTS
    # --------------------------------------------------

    def test_staff_creates_but_cannot_approve(self):
        data = self._create_request()
        self.assertEqual(data["status"], OrderRequest.STATUS_PENDING)

        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/approve/")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_approves_once(self):
        data = self._create_request()
        self.client.force_authenticate(user=self.manager)

        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/approve/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["order_request"]["status"], OrderRequest.STATUS_APPROVED)
        self.assertEqual(len(res.data["created"]), 1)
        self.assertEqual(res.data["skipped"], [])

        again = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/approve/")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["error"]["code"], "INVALID_STATUS_TRANSITION")
        self.assertEqual(RequestVehicle.objects.count(), 1)

    def test_approve_reports_skipped_items(self):
        data = self._create_request(color="")
        self.client.force_authenticate(user=self.manager)

        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/approve/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["created"], [])
        self.assertEqual(res.data["skipped"][0]["reason"], "Color is required")

    def test_reject_requires_reason(self):
        data = self._create_request()
        self.client.force_authenticate(user=self.manager)

        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/reject/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/reject/", {"reason": "Budget"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], OrderRequest.STATUS_REJECTED)

    # --------------------------------------------------
    # DISTRIBUTION
    # --------------------------------------------------

    def _approved_vehicle_request(self, quantity=4):
        data = self._create_request(quantity=quantity)
        self.client.force_authenticate(user=self.manager)
        res = self.client.post(f"{ORDER_REQUESTS_URL}{data['id']}/approve/")
        return res.data["created"][0]["id"]

    def test_manufacturer_distributes(self):
        stock(self.vehicle, Owner.manufacturer(self.mfr), 10)
        rv_id = self._approved_vehicle_request(quantity=4)

        self.client.force_authenticate(user=self.evm)
        res = self.client.post(f"{VEHICLE_REQUESTS_URL}{rv_id}/approve/")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], RequestVehicle.STATUS_APPROVED)

        debt = DealerManufacturerDebt.objects.get(dealership=self.dealer, manufacturer=self.mfr)
        self.assertEqual(debt.total_amount, Decimal("1000.00"))

    def test_dealer_cannot_distribute(self):
        rv_id = self._approved_vehicle_request()

        res = self.client.post(f"{VEHICLE_REQUESTS_URL}{rv_id}/approve/")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_manufacturer_shortage_maps_to_409(self):
        stock(self.vehicle, Owner.manufacturer(self.mfr), 1)
        rv_id = self._approved_vehicle_request(quantity=4)

        self.client.force_authenticate(user=self.evm)
        res = self.client.post(f"{VEHICLE_REQUESTS_URL}{rv_id}/approve/")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(res.data["error"]["details"]["available"], 1)
        self.assertEqual(RequestVehicle.objects.get(pk=rv_id).status, RequestVehicle.STATUS_PENDING)

    def test_other_manufacturer_does_not_see_request(self):
        rv_id = self._approved_vehicle_request()
        stranger = make_user(role=Role.EVM_STAFF, manufacturer=make_manufacturer())

        self.client.force_authenticate(user=stranger)
        res = self.client.post(f"{VEHICLE_REQUESTS_URL}{rv_id}/approve/")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
