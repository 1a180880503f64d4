# inventory/tests/test_inventory_api.py

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.tests.fixtures import make_dealership, make_manufacturer, make_user, make_vehicle, stock
from inventory.models import OwnerType, StockBatch
from inventory.services.stock_ledger import Owner
from permissions.roles import Role

INTAKE_URL = "/api/inventory/intake/"
BATCHES_URL = "/api/inventory/batches/"


class InventoryApiTests(TestCase):
    """
    Stock intake + batch listing.

    GUARANTEES:
    - manufacturer staff register stock for their own manufacturer only
    - dealers cannot register stock
    - batch lists are scoped to the caller's owner
    """

    def setUp(self):
        self.client = APIClient()
        self.mfr = make_manufacturer()
        self.dealer = make_dealership()
        self.vehicle = make_vehicle(self.mfr)

        self.evm = make_user(role=Role.EVM_STAFF, manufacturer=self.mfr)
        self.staff = make_user(role=Role.DEALER_STAFF, dealership=self.dealer)

    def test_intake_defaults_to_vehicle_manufacturer(self):
        self.client.force_authenticate(user=self.evm)

        res = self.client.post(
            INTAKE_URL,
            {"vehicle": str(self.vehicle.pk), "color": "Red", "quantity": 7, "unit_cost": "90.00"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        batch = StockBatch.objects.get(pk=res.data["id"])
        self.assertEqual(batch.owner_type, OwnerType.MANUFACTURER)
        self.assertEqual(batch.owner_id, self.mfr.pk)
        self.assertEqual(batch.remaining_quantity, 7)

    def test_intake_for_foreign_owner_forbidden(self):
        self.client.force_authenticate(user=self.evm)

        res = self.client.post(
            INTAKE_URL,
            {
                "vehicle": str(self.vehicle.pk),
                "color": "Red",
                "quantity": 1,
                "owner_type": OwnerType.DEALER,
                "owner_id": str(self.dealer.pk),
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["error"]["code"], "FORBIDDEN_OWNER")
        self.assertFalse(StockBatch.objects.exists())

    def test_dealer_cannot_intake(self):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(
            INTAKE_URL,
            {"vehicle": str(self.vehicle.pk), "color": "Red", "quantity": 1},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_batches_scoped_to_owner(self):
        stock(self.vehicle, Owner.manufacturer(self.mfr), 5)
        stock(self.vehicle, Owner.dealer(self.dealer), 2)
        stock(self.vehicle, Owner.dealer(make_dealership()), 3)

        self.client.force_authenticate(user=self.staff)
        res = self.client.get(BATCHES_URL)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["remaining_quantity"], 2)

        self.client.force_authenticate(user=self.evm)
        res = self.client.get(BATCHES_URL)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["remaining_quantity"], 5)

    def test_batch_movements(self):
        batch = stock(self.vehicle, Owner.dealer(self.dealer), 2)
        self.client.force_authenticate(user=self.staff)

        res = self.client.get(f"{BATCHES_URL}{batch.pk}/movements/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([m["reason"] for m in res.data], ["INTAKE"])
