# replenishment/models/request_vehicle.py

"""
REQUEST VEHICLE (DEALER → MANUFACTURER)

One per approved OrderRequest item.

pending ──approve──► approved  (= distributed: stock transferred to the
   │                            dealer and dealer debt increased, atomically)
   └──reject───────► rejected

Only `pending` is non-terminal: approval performs the distribution itself.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from catalog.models import Dealership, Vehicle

User = settings.AUTH_USER_MODEL


class RequestVehicle(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CANCELED = "canceled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_CANCELED, "Canceled"),
    ]

    NON_TERMINAL_STATUSES = {STATUS_PENDING}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_request = models.ForeignKey(
        "replenishment.OrderRequest",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vehicle_requests",
    )

    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        related_name="vehicle_requests",
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="vehicle_requests",
    )
    color = models.CharField(max_length=50)
    quantity = models.PositiveIntegerField()

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    debt = models.ForeignKey(
        "debts.DealerManufacturerDebt",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vehicle_requests",
    )
    transfer = models.OneToOneField(
        "inventory.StockTransfer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vehicle_request",
    )

    notes = models.TextField(blank=True)

    processed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vehicle_requests_processed",
    )
    processed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["dealership", "vehicle", "color", "status"],
                name="idx_reqvehicle_dup_lookup",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_reqvehicle_qty_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} × {self.vehicle_id} {self.color} [{self.status}]"
