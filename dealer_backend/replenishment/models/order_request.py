# replenishment/models/order_request.py

"""
ORDER REQUEST (DEALER-INTERNAL)

pending ──approve──► approved   (spawns RequestVehicle rows)
   │
   ├──reject───────► rejected   (linked order is only annotated)
   └──cancel───────► canceled   (linked order was cancelled)

At most ONE pending request per order (partial unique constraint,
plus a service-level guard that reports DuplicatePendingRequest).
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from catalog.models import Dealership, Vehicle

User = settings.AUTH_USER_MODEL


class OrderRequest(models.Model):
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

    TERMINAL_STATUSES = {STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELED}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=32, unique=True, db_index=True)

    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        related_name="order_requests",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="order_requests",
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    requested_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_requests_created",
    )
    decided_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_requests_decided",
    )
    decided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=Q(status="pending") & Q(order__isnull=False),
                name="uniq_pending_request_per_order",
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def __str__(self):
        return f"{self.code} [{self.status}]"


class OrderRequestItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_request = models.ForeignKey(
        OrderRequest,
        on_delete=models.CASCADE,
        related_name="items",
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="order_request_items",
    )
    color = models.CharField(max_length=50, blank=True, default="")
    quantity = models.PositiveIntegerField()

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_requestitem_qty_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} × {self.vehicle_id} {self.color or '-'}"
