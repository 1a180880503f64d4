# debts/models/customer_debt.py

import uuid

from django.db import models
from django.db.models import F, Q

from catalog.models import Customer, Dealership

from .base import DebtAccount


class CustomerDebt(DebtAccount):
    """
    What a customer still owes the dealership for ONE order.

    Created with the order; mutated only by payment application;
    voided (remaining forced to 0) when the order is cancelled.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="debts",
    )
    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        related_name="customer_debts",
    )
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="customer_debt",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0) & Q(remaining_amount__gte=0),
                name="chk_custdebt_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F("total_amount")),
                name="chk_custdebt_paid_lte_total",
            ),
        ]

    def __str__(self):
        return f"CustomerDebt {self.order_id} | {self.remaining_amount}/{self.total_amount} [{self.status}]"
