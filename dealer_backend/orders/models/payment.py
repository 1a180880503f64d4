# orders/models/payment.py

"""
CUSTOMER PAYMENT (IMMUTABLE RECEIPT)

One row per payment recorded against an order.
reference is the idempotency key also used for dealer-debt settlement.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .order import Order


class Payment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    method = models.CharField(max_length=10, choices=Order.PAYMENT_METHOD_CHOICES)

    reference = models.CharField(max_length=64, unique=True)
    note = models.CharField(max_length=255, blank=True)

    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_payments",
    )
    paid_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["paid_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_payment_amount_gt_zero",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Payment records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Payment records cannot be deleted")

    def __str__(self):
        return f"{self.reference} | {self.amount}"
