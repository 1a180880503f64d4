import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


DEBT_STATUS_CHOICES = [
    ("open", "Open"),
    ("partial", "Partially Paid"),
    ("settled", "Settled"),
    ("void", "Void"),
]


def _balance_fields():
    return [
        ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
        ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
        ("remaining_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
        ("status", models.CharField(choices=DEBT_STATUS_CHOICES, db_index=True, default="open", max_length=10)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CustomerDebt",
            fields=[
                *_balance_fields(),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="debts",
                        to="catalog.customer",
                    ),
                ),
                (
                    "dealership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customer_debts",
                        to="catalog.dealership",
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customer_debt",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", 0), ("remaining_amount__gte", 0)),
                        name="chk_custdebt_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__lte", models.F("total_amount"))),
                        name="chk_custdebt_paid_lte_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DealerManufacturerDebt",
            fields=[
                *_balance_fields(),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "dealership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="manufacturer_debts",
                        to="catalog.dealership",
                    ),
                ),
                (
                    "manufacturer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dealer_debts",
                        to="catalog.manufacturer",
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("dealership", "manufacturer"),
                        name="uniq_dealer_manufacturer_debt",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", 0), ("remaining_amount__gte", 0)),
                        name="chk_dealerdebt_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__lte", models.F("total_amount"))),
                        name="chk_dealerdebt_paid_lte_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DebtObligation",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=16)),
                ("settled_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("source_reference", models.CharField(db_index=True, max_length=120)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "debt",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="obligations",
                        to="debts.dealermanufacturerdebt",
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="debt_obligations",
                        to="catalog.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="chk_obligation_amount_gt_zero"),
                    models.CheckConstraint(
                        condition=models.Q(("settled_amount__gte", 0), ("settled_amount__lte", models.F("amount"))),
                        name="chk_obligation_settled_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DebtSettlement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_code", models.CharField(blank=True, max_length=32)),
                ("payment_reference", models.CharField(db_index=True, max_length=64)),
                ("quantity_sold", models.PositiveIntegerField(default=0)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=16)),
                ("settled_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "debt",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settled_by_orders",
                        to="debts.dealermanufacturerdebt",
                    ),
                ),
                (
                    "obligation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlements",
                        to="debts.debtobligation",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dealer_debt_settlements",
                        to="orders.order",
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dealer_debt_settlements",
                        to="orders.payment",
                    ),
                ),
            ],
            options={
                "ordering": ["settled_at", "obligation_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("debt", "payment_reference", "obligation"),
                        name="uniq_settlement_per_payment_obligation",
                    ),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="chk_settlement_amount_gt_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DealerDebtPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=16)),
                (
                    "method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("bank", "Bank Transfer"), ("qr", "QR"), ("card", "Card")],
                        default="bank",
                        max_length=10,
                    ),
                ),
                ("reference", models.CharField(max_length=64, unique=True)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("paid_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "debt",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="debts.dealermanufacturerdebt",
                    ),
                ),
                (
                    "paid_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="dealer_debt_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["paid_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="chk_dealerpayment_amount_gt_zero",
                    ),
                ],
            },
        ),
    ]
