# debts/models/base.py

from decimal import Decimal

from django.db import models


class DebtAccount(models.Model):
    """
    Running balance between two parties.

    Balances are mutated ONLY via debts.services.debt_ledger:
        remaining_amount = total_amount - paid_amount
        status: settled if remaining <= 0, partial if paid > 0, else open
    """

    STATUS_OPEN = "open"
    STATUS_PARTIAL = "partial"
    STATUS_SETTLED = "settled"
    STATUS_VOID = "void"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_PARTIAL, "Partially Paid"),
        (STATUS_SETTLED, "Settled"),
        (STATUS_VOID, "Void"),
    ]

    total_amount = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    paid_amount = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    remaining_amount = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_OPEN,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @classmethod
    def derive_status(cls, *, paid_amount, remaining_amount) -> str:
        if Decimal(remaining_amount) <= 0:
            return cls.STATUS_SETTLED
        if Decimal(paid_amount) > 0:
            return cls.STATUS_PARTIAL
        return cls.STATUS_OPEN
