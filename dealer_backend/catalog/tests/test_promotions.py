# catalog/tests/test_promotions.py

from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from catalog.models import Promotion
from catalog.services.promotions import deactivate_expired_promotions
from core.tests.fixtures import make_dealership, make_manufacturer, make_vehicle


def make_promotion(*, type=Promotion.TYPE_PERCENT, value="10", days_left=5, dealership=None, vehicles=()):
    now = timezone.now()
    promo = Promotion.objects.create(
        name="Tet sale",
        type=type,
        value=Decimal(value),
        dealership=dealership,
        start_date=now - timedelta(days=10),
        end_date=now + timedelta(days=days_left),
    )
    if vehicles:
        promo.vehicles.set(vehicles)
    return promo


class PromotionRulesTests(TestCase):
    """
    GUARANTEES:
    - discounts are per unit and never exceed the unit price
    - targeting by vehicle / dealership is honored
    - expired or inactive promotions never apply
    """

    def setUp(self):
        self.mfr = make_manufacturer()
        self.dealer = make_dealership()
        self.vehicle = make_vehicle(self.mfr, price="1000.00")

    def test_percent_discount(self):
        promo = make_promotion(value="12.5")
        self.assertEqual(promo.discount_for(Decimal("999.99")), Decimal("125.00"))

    def test_amount_discount_capped_at_price(self):
        promo = make_promotion(type=Promotion.TYPE_AMOUNT, value="1500")
        self.assertEqual(promo.discount_for(Decimal("1000.00")), Decimal("1000.00"))

    def test_untargeted_applies_everywhere(self):
        promo = make_promotion()
        self.assertTrue(promo.applies_to(vehicle=self.vehicle, dealership=self.dealer))

    def test_vehicle_targeting(self):
        other = make_vehicle(self.mfr)
        promo = make_promotion(vehicles=[other])

        self.assertFalse(promo.applies_to(vehicle=self.vehicle, dealership=self.dealer))
        self.assertTrue(promo.applies_to(vehicle=other, dealership=self.dealer))

    def test_dealership_targeting(self):
        promo = make_promotion(dealership=make_dealership())
        self.assertFalse(promo.applies_to(vehicle=self.vehicle, dealership=self.dealer))

    def test_expired_and_inactive_never_apply(self):
        expired = make_promotion(days_left=-1)
        self.assertFalse(expired.applies_to(vehicle=self.vehicle, dealership=self.dealer))

        inactive = make_promotion()
        inactive.status = Promotion.STATUS_INACTIVE
        inactive.save()
        self.assertFalse(inactive.applies_to(vehicle=self.vehicle, dealership=self.dealer))


class DeactivateExpiredPromotionsTests(TestCase):
    """
    GUARANTEES:
    - only active promotions past their end_date are switched off
    - --dry-run reports without writing
    """

    def setUp(self):
        self.expired = make_promotion(days_left=-1)
        self.running = make_promotion(days_left=3)

    def test_service(self):
        self.assertEqual(deactivate_expired_promotions(), 1)

        self.expired.refresh_from_db()
        self.running.refresh_from_db()
        self.assertEqual(self.expired.status, Promotion.STATUS_INACTIVE)
        self.assertEqual(self.running.status, Promotion.STATUS_ACTIVE)

        self.assertEqual(deactivate_expired_promotions(), 0)

    def test_command_dry_run(self):
        out = StringIO()
        call_command("deactivate_expired_promotions", "--dry-run", stdout=out)

        self.assertIn("1 promotion(s) would be deactivated", out.getvalue())
        self.expired.refresh_from_db()
        self.assertEqual(self.expired.status, Promotion.STATUS_ACTIVE)

    def test_command(self):
        out = StringIO()
        call_command("deactivate_expired_promotions", stdout=out)

        self.assertIn("Deactivated 1", out.getvalue())
        self.expired.refresh_from_db()
        self.assertEqual(self.expired.status, Promotion.STATUS_INACTIVE)
