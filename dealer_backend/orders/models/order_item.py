# orders/models/order_item.py

"""
ORDER ITEM + ALLOCATION TRACE

OrderItem pricing (per unit, snapshotted at order creation):
    unit_price = vehicle.price + sum(options.price) + sum(accessories.price)
    final_amount = max(0, (unit_price - discount - promotion_discount) × quantity)

UsedStock rows are the allocation trace: which StockBatch gave how many
units to this item. Active rows (reversed_at IS NULL) always sum to
item.quantity once the item is allocated; cancellation reverses them.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

from catalog.models import Promotion, Vehicle
from inventory.models import StockBatch

from .order import Order


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    color = models.CharField(max_length=50, blank=True, default="")

    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    discount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"),
        help_text="Manual per-unit discount.",
    )

    promotion = models.ForeignKey(
        Promotion,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    promotion_discount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"),
        help_text="Per-unit promotion discount snapshot.",
    )

    options = models.JSONField(default=list, blank=True)
    accessories = models.JSONField(default=list, blank=True)

    final_amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_orderitem_qty_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(final_amount__gte=0),
                name="chk_orderitem_final_gte_zero",
            ),
        ]

    @property
    def allocated_quantity(self) -> int:
        return sum(
            int(u.quantity)
            for u in self.used_stocks.all()
            if u.reversed_at is None
        )

    @property
    def is_allocated(self) -> bool:
        return self.allocated_quantity == int(self.quantity or 0)

    def __str__(self):
        return f"{self.quantity} × {getattr(self.vehicle, 'sku', self.vehicle_id)} {self.color or '-'}"


class UsedStock(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="used_stocks",
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.PROTECT,
        related_name="used_by_items",
    )

    quantity = models.PositiveIntegerField()

    allocated_at = models.DateTimeField(default=timezone.now)
    reversed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["allocated_at", "batch_id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_usedstock_qty_gt_zero",
            ),
        ]

    def __str__(self):
        return f"Batch #{self.batch_id} × {self.quantity}"
