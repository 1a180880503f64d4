# inventory/models/stock_batch.py

"""
STOCK BATCH (DELIVERY-BASED VEHICLE INVENTORY)

Represents ONE quantity of a vehicle/color held by ONE owner
(manufacturer or dealership).

CANONICAL MODEL:
- Created on manufacturer intake, or at the receiving side of a transfer
  (a transfer always creates a NEW batch, received_at = transfer time).
- quantity is immutable after creation.
- remaining_quantity is mutated ONLY via inventory.services.stock_ledger.
- Never deleted.

FIFO KEY:
- received_at ascending, tie-broken by id (BigAutoField = insertion sequence).
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from catalog.models import Vehicle


class OwnerType(models.TextChoices):
    MANUFACTURER = "manufacturer", "Manufacturer"
    DEALER = "dealer", "Dealer"


class StockBatch(models.Model):
    id = models.BigAutoField(primary_key=True)

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="stock_batches",
    )

    color = models.CharField(max_length=50, blank=True, default="")

    owner_type = models.CharField(max_length=20, choices=OwnerType.choices)
    owner_id = models.UUIDField(
        help_text="Manufacturer.id or Dealership.id depending on owner_type",
    )

    quantity = models.PositiveIntegerField(
        help_text="Quantity received (immutable)",
    )
    remaining_quantity = models.PositiveIntegerField(
        help_text="Remaining quantity (service-managed only)",
    )

    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Cost basis per unit for the owner of this batch.",
    )

    received_at = models.DateTimeField(default=timezone.now)

    source_transfer = models.ForeignKey(
        "inventory.StockTransfer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="received_batches",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["received_at", "id"]
        verbose_name_plural = "stock batches"
        indexes = [
            models.Index(
                fields=["vehicle", "owner_type", "owner_id", "color", "received_at"],
                name="idx_batch_fifo_lookup",
            ),
            models.Index(fields=["owner_type", "owner_id"], name="idx_batch_owner"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_batch_qty_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__gte=0),
                name="chk_batch_remaining_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__lte=F("quantity")),
                name="chk_batch_remaining_lte_quantity",
            ),
        ]

    def clean(self):
        if self.quantity is not None and self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})
        if (
            self.quantity is not None
            and self.remaining_quantity is not None
            and not 0 <= self.remaining_quantity <= self.quantity
        ):
            raise ValidationError("remaining_quantity must be between 0 and quantity")
        self.color = (self.color or "").strip()

    def __str__(self):
        return (
            f"Batch #{self.pk} | {getattr(self.vehicle, 'sku', self.vehicle_id)} "
            f"{self.color or '-'} | {self.owner_type}:{self.owner_id} "
            f"{self.remaining_quantity}/{self.quantity}"
        )
