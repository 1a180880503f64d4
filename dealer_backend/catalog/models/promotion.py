# catalog/models/promotion.py

"""
PROMOTION

Two kinds:
- percent: discount = unit_price × value / 100
- amount:  discount = value (flat, per unit)

A promotion applies to a vehicle when:
- status is active
- now is inside [start_date, end_date]
- it targets the vehicle (or targets no vehicles = all)
- it targets the dealership (or has no dealership = all)

Expired promotions are switched to inactive by the
`deactivate_expired_promotions` management command.
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .party import Dealership
from .vehicle import Vehicle

TWOPLACES = Decimal("0.01")


class Promotion(models.Model):
    TYPE_PERCENT = "percent"
    TYPE_AMOUNT = "amount"

    TYPE_CHOICES = [
        (TYPE_PERCENT, "Percent"),
        (TYPE_AMOUNT, "Amount"),
    ]

    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    value = models.DecimalField(max_digits=14, decimal_places=2)

    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="promotions",
        help_text="Empty = all dealerships.",
    )
    vehicles = models.ManyToManyField(
        Vehicle,
        blank=True,
        related_name="promotions",
        help_text="Empty = all vehicles.",
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["status", "end_date"], name="idx_promotion_status_end"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(value__gte=0),
                name="chk_promotion_value_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="chk_promotion_window_ordered",
            ),
        ]

    def clean(self):
        if self.type == self.TYPE_PERCENT and self.value is not None and self.value > 100:
            raise ValidationError({"value": "percent promotion cannot exceed 100"})
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must be after start_date"})

    def is_running(self, at=None) -> bool:
        at = at or timezone.now()
        return (
            self.status == self.STATUS_ACTIVE
            and self.start_date <= at <= self.end_date
        )

    def applies_to(self, *, vehicle, dealership=None, at=None) -> bool:
        if not self.is_running(at):
            return False
        if self.dealership_id and dealership is not None and self.dealership_id != dealership.id:
            return False
        targeted = list(self.vehicles.values_list("id", flat=True))
        return not targeted or vehicle.id in targeted

    def discount_for(self, unit_price) -> Decimal:
        """
        Per-unit discount, never more than the unit price.
        """
        price = Decimal(str(unit_price or 0))
        if self.type == self.TYPE_PERCENT:
            d = price * Decimal(str(self.value)) / Decimal("100")
        else:
            d = Decimal(str(self.value))
        d = min(d, price)
        return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    def __str__(self):
        return self.name
