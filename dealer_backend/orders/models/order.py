# orders/models/order.py

"""
ORDER (CUSTOMER PURCHASE)

Lifecycle (see orders.services.order_lifecycle):
    pending → deposit_paid → waiting_vehicle_request → vehicle_ready
            → fully_paid → delivered → completed
    cancelled is reachable from any state before delivered.

Money:
- final_amount = sum(item.final_amount), fixed at creation
- paid_amount  = sum(payments), never above final_amount (DB constraint)

status / paid_amount are mutated ONLY via orders.services.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from catalog.models import Customer, Dealership

User = settings.AUTH_USER_MODEL


class Order(models.Model):
    STATUS_PENDING = "pending"
    STATUS_DEPOSIT_PAID = "deposit_paid"
    STATUS_WAITING_VEHICLE_REQUEST = "waiting_vehicle_request"
    STATUS_VEHICLE_READY = "vehicle_ready"
    STATUS_FULLY_PAID = "fully_paid"
    STATUS_DELIVERED = "delivered"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_DEPOSIT_PAID, "Deposit Paid"),
        (STATUS_WAITING_VEHICLE_REQUEST, "Waiting Vehicle Request"),
        (STATUS_VEHICLE_READY, "Vehicle Ready"),
        (STATUS_FULLY_PAID, "Fully Paid"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_BANK = "bank"
    PAYMENT_QR = "qr"
    PAYMENT_CARD = "card"

    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_BANK, "Bank Transfer"),
        (PAYMENT_QR, "QR"),
        (PAYMENT_CARD, "Card"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=32, unique=True, db_index=True)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    salesperson = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_sold",
    )

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    payment_method = models.CharField(
        max_length=10,
        choices=PAYMENT_METHOD_CHOICES,
        default=PAYMENT_CASH,
    )

    subtotal_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    final_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    paid_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    notes = models.TextField(blank=True)

    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["dealership", "status"], name="idx_order_dealer_status"),
            models.Index(fields=["customer", "created_at"], name="idx_order_customer_created"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0),
                name="chk_order_paid_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F("final_amount")),
                name="chk_order_paid_lte_final",
            ),
        ]

    @property
    def remaining_amount(self) -> Decimal:
        return Decimal(self.final_amount or 0) - Decimal(self.paid_amount or 0)

    @property
    def is_fully_paid(self) -> bool:
        return Decimal(self.paid_amount or 0) >= Decimal(self.final_amount or 0)

    def __str__(self):
        return f"{self.code} [{self.status}]"
