# inventory/models/stock_movement.py

"""
STOCK MOVEMENT JOURNAL

Immutable inventory ledger entry, one per batch mutation.

GUARANTEES:
- Append-only (no updates, no deletes)
- Movement direction validated against reason
- `reference` ties movements to the business event that caused them
  (ORDER:<code>, TRANSFER:<id>, INTAKE:<id>) and is what makes
  reversal idempotent per reference.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .stock_batch import StockBatch


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        INTAKE = "INTAKE", "Manufacturer Intake"
        ALLOCATION = "ALLOCATION", "Order Allocation"
        REVERSAL = "REVERSAL", "Allocation Reversal"
        TRANSFER_OUT = "TRANSFER_OUT", "Transfer Out"
        TRANSFER_IN = "TRANSFER_IN", "Transfer In"

    REASON_TO_MOVEMENT = {
        Reason.INTAKE: MovementType.IN,
        Reason.ALLOCATION: MovementType.OUT,
        Reason.REVERSAL: MovementType.IN,
        Reason.TRANSFER_OUT: MovementType.OUT,
        Reason.TRANSFER_IN: MovementType.IN,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    batch = models.ForeignKey(
        StockBatch, on_delete=models.PROTECT, related_name="movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    reference = models.CharField(max_length=120, db_index=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["reference", "reason"], name="idx_movement_ref_reason"),
            models.Index(fields=["batch", "created_at"], name="idx_movement_batch_created"),
        ]

    def clean(self):
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

        if not (self.reference or "").strip():
            raise ValidationError("reference is required")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        return f"Batch #{self.batch_id} | {self.reason} | {self.quantity} | {self.reference}"
