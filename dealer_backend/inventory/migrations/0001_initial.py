import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


OWNER_CHOICES = [("manufacturer", "Manufacturer"), ("dealer", "Dealer")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockTransfer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("color", models.CharField(blank=True, default="", max_length=50)),
                ("from_owner_type", models.CharField(choices=OWNER_CHOICES, max_length=20)),
                ("from_owner_id", models.UUIDField()),
                ("to_owner_type", models.CharField(choices=OWNER_CHOICES, max_length=20)),
                ("to_owner_id", models.UUIDField()),
                ("quantity", models.PositiveIntegerField()),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("reference", models.CharField(blank=True, db_index=True, max_length=120)),
                ("transferred_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_transfers",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transfers",
                        to="catalog.vehicle",
                    ),
                ),
            ],
            options={"ordering": ["-transferred_at"]},
        ),
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("color", models.CharField(blank=True, default="", max_length=50)),
                ("owner_type", models.CharField(choices=OWNER_CHOICES, max_length=20)),
                (
                    "owner_id",
                    models.UUIDField(help_text="Manufacturer.id or Dealership.id depending on owner_type"),
                ),
                ("quantity", models.PositiveIntegerField(help_text="Quantity received (immutable)")),
                (
                    "remaining_quantity",
                    models.PositiveIntegerField(help_text="Remaining quantity (service-managed only)"),
                ),
                (
                    "unit_cost",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Cost basis per unit for the owner of this batch.",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("received_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "source_transfer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="received_batches",
                        to="inventory.stocktransfer",
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_batches",
                        to="catalog.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["received_at", "id"],
                "verbose_name_plural": "stock batches",
                "indexes": [
                    models.Index(
                        fields=["vehicle", "owner_type", "owner_id", "color", "received_at"],
                        name="idx_batch_fifo_lookup",
                    ),
                    models.Index(fields=["owner_type", "owner_id"], name="idx_batch_owner"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="chk_batch_qty_gt_zero"),
                    models.CheckConstraint(
                        condition=models.Q(("remaining_quantity__gte", 0)),
                        name="chk_batch_remaining_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("remaining_quantity__lte", models.F("quantity"))),
                        name="chk_batch_remaining_lte_quantity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("movement_type", models.CharField(choices=[("IN", "Stock In"), ("OUT", "Stock Out")], max_length=3)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("INTAKE", "Manufacturer Intake"),
                            ("ALLOCATION", "Order Allocation"),
                            ("REVERSAL", "Allocation Reversal"),
                            ("TRANSFER_OUT", "Transfer Out"),
                            ("TRANSFER_IN", "Transfer In"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("reference", models.CharField(db_index=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.stockbatch",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["reference", "reason"], name="idx_movement_ref_reason"),
                    models.Index(fields=["batch", "created_at"], name="idx_movement_batch_created"),
                ],
            },
        ),
    ]
