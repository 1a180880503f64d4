# inventory/models/stock_transfer.py

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from catalog.models import Vehicle

from .stock_batch import OwnerType


class StockTransfer(models.Model):
    """
    One inter-owner transfer (normally manufacturer → dealer distribution).
    The receiving batch points back here via StockBatch.source_transfer.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="stock_transfers",
    )
    color = models.CharField(max_length=50, blank=True, default="")

    from_owner_type = models.CharField(max_length=20, choices=OwnerType.choices)
    from_owner_id = models.UUIDField()
    to_owner_type = models.CharField(max_length=20, choices=OwnerType.choices)
    to_owner_id = models.UUIDField()

    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    reference = models.CharField(max_length=120, blank=True, db_index=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transfers",
    )

    transferred_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-transferred_at"]

    def __str__(self):
        return (
            f"Transfer {self.quantity} × {self.vehicle_id} {self.color or '-'} "
            f"{self.from_owner_type}→{self.to_owner_type}"
        )
