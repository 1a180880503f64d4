# catalog/models/vehicle.py

"""
VEHICLE CATALOG

Vehicle.price is the distribution price used for dealer→manufacturer debt
(price × quantity on every distribution) and the base selling price for
order items.

color_options is the list of colors the manufacturer produces.
Stock is tracked per (vehicle, color, owner) in inventory.StockBatch.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from .party import Manufacturer


class Vehicle(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    manufacturer = models.ForeignKey(
        Manufacturer,
        on_delete=models.PROTECT,
        related_name="vehicles",
    )

    name = models.CharField(max_length=255)
    model_name = models.CharField(max_length=100, blank=True)
    version = models.CharField(max_length=100, blank=True)
    sku = models.CharField(max_length=64, unique=True)

    price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Distribution / list price per unit.",
    )

    color_options = models.JSONField(
        default=list,
        blank=True,
        help_text="Available colors, e.g. ['Red', 'White'].",
    )

    range_km = models.PositiveIntegerField(null=True, blank=True)
    battery_capacity_kwh = models.DecimalField(
        max_digits=6, decimal_places=1, null=True, blank=True
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["manufacturer", "status"], name="idx_vehicle_mfr_status"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name="chk_vehicle_price_gte_zero",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def clean(self):
        if self.price is not None and Decimal(self.price) < Decimal("0.00"):
            raise ValidationError({"price": "price must be >= 0"})
        if not isinstance(self.color_options, list):
            raise ValidationError({"color_options": "color_options must be a list"})
        self.color_options = [str(c).strip() for c in self.color_options if str(c).strip()]

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.sku})"


class VehicleOption(models.Model):
    """
    Factory option (e.g. premium interior) priced on top of the vehicle.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Accessory(models.Model):
    """
    Dealer-fitted accessory (floor mats, charger...) priced per vehicle unit.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=100, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "accessories"

    def __str__(self):
        return self.name
