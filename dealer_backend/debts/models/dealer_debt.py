# debts/models/dealer_debt.py

"""
DEALER → MANUFACTURER DEBT

Aggregated per (dealership, manufacturer) pair: every distribution adds to
the same row. Per-distribution identity survives as DebtObligation rows,
and every amount that reduced the debt is recorded as a DebtSettlement
(exposed as `settled_by_orders`).

INVARIANTS (kept by debts.services.debt_ledger):
- total_amount     == sum(obligations.amount)
- total - remaining == sum(settled_by_orders.amount)
- obligations are cleared oldest-first
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from catalog.models import Dealership, Manufacturer, Vehicle

from .base import DebtAccount


class DealerManufacturerDebt(DebtAccount):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        related_name="manufacturer_debts",
    )
    manufacturer = models.ForeignKey(
        Manufacturer,
        on_delete=models.PROTECT,
        related_name="dealer_debts",
    )

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["dealership", "manufacturer"],
                name="uniq_dealer_manufacturer_debt",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0) & Q(remaining_amount__gte=0),
                name="chk_dealerdebt_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F("total_amount")),
                name="chk_dealerdebt_paid_lte_total",
            ),
        ]

    def __str__(self):
        return f"{self.dealership_id} → {self.manufacturer_id} | {self.remaining_amount}/{self.total_amount}"


class DebtObligation(models.Model):
    """
    One distribution event that increased a dealer debt.
    id is the FIFO sequence for settlement.
    """

    id = models.BigAutoField(primary_key=True)

    debt = models.ForeignKey(
        DealerManufacturerDebt,
        on_delete=models.PROTECT,
        related_name="obligations",
    )

    amount = models.DecimalField(max_digits=16, decimal_places=2)
    settled_amount = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="debt_obligations",
    )
    quantity = models.PositiveIntegerField(default=0)

    source_reference = models.CharField(max_length=120, db_index=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_obligation_amount_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(settled_amount__gte=0) & Q(settled_amount__lte=F("amount")),
                name="chk_obligation_settled_range",
            ),
        ]

    @property
    def open_amount(self) -> Decimal:
        return Decimal(self.amount) - Decimal(self.settled_amount)

    def __str__(self):
        return f"Obligation #{self.pk} | {self.settled_amount}/{self.amount} | {self.source_reference}"


class DebtSettlement(models.Model):
    """
    settled_by_orders entry: which order / payment cleared how much of
    which obligation. order is NULL for direct dealer payments.
    Created once. Never updated. Never deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    debt = models.ForeignKey(
        DealerManufacturerDebt,
        on_delete=models.PROTECT,
        related_name="settled_by_orders",
    )
    obligation = models.ForeignKey(
        DebtObligation,
        on_delete=models.PROTECT,
        related_name="settlements",
    )

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="dealer_debt_settlements",
    )
    order_code = models.CharField(max_length=32, blank=True)

    payment = models.ForeignKey(
        "orders.Payment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="dealer_debt_settlements",
    )
    payment_reference = models.CharField(max_length=64, db_index=True)

    quantity_sold = models.PositiveIntegerField(default=0)
    amount = models.DecimalField(max_digits=16, decimal_places=2)

    settled_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["settled_at", "obligation_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["debt", "payment_reference", "obligation"],
                name="uniq_settlement_per_payment_obligation",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_settlement_amount_gt_zero",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("DebtSettlement records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("DebtSettlement records cannot be deleted")

    def __str__(self):
        return f"{self.order_code or 'direct'} | {self.payment_reference} | {self.amount}"


class DealerDebtPayment(models.Model):
    """
    Direct dealer → manufacturer payment (bank transfer etc).
    """

    METHOD_CHOICES = [
        ("cash", "Cash"),
        ("bank", "Bank Transfer"),
        ("qr", "QR"),
        ("card", "Card"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    debt = models.ForeignKey(
        DealerManufacturerDebt,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    amount = models.DecimalField(max_digits=16, decimal_places=2)
    method = models.CharField(max_length=10, choices=METHOD_CHOICES, default="bank")
    reference = models.CharField(max_length=64, unique=True)
    note = models.CharField(max_length=255, blank=True)

    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dealer_debt_payments",
    )
    paid_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["paid_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_dealerpayment_amount_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.reference} | {self.amount}"
