# orders/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from catalog.models import Accessory, Customer, Dealership, Promotion, Vehicle, VehicleOption
from orders.models import Order, OrderItem, OrderStatusLog, Payment, UsedStock


# ======================================================
# READ SERIALIZERS
# ======================================================

class UsedStockSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsedStock
        fields = ["id", "batch", "quantity", "allocated_at", "reversed_at"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    """
    Order line (read-only), with the batches it consumed.
    """

    vehicle_name = serializers.CharField(source="vehicle.name", read_only=True)
    sku = serializers.CharField(source="vehicle.sku", read_only=True)
    used_stocks = UsedStockSerializer(many=True, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "vehicle",
            "vehicle_name",
            "sku",
            "color",
            "quantity",
            "unit_price",
            "discount",
            "promotion",
            "promotion_discount",
            "options",
            "accessories",
            "final_amount",
            "used_stocks",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    CANONICAL ORDER VIEW

    remaining_amount is derived (final - paid), never stored.
    """

    customer_name = serializers.CharField(source="customer.full_name", read_only=True)
    remaining_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "code",
            "customer",
            "customer_name",
            "dealership",
            "salesperson",
            "status",
            "payment_method",
            "subtotal_amount",
            "discount_amount",
            "final_amount",
            "paid_amount",
            "remaining_amount",
            "notes",
            "delivered_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "order", "amount", "method", "reference", "note", "paid_by", "paid_at"]
        read_only_fields = fields


class OrderStatusLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusLog
        fields = [
            "id",
            "old_status",
            "new_status",
            "changed_by",
            "changed_by_name",
            "reason",
            "notes",
            "payment_info",
            "created_at",
        ]
        read_only_fields = fields


# ======================================================
# COMMAND SERIALIZERS
# ======================================================

class OrderItemInputSerializer(serializers.Serializer):
    vehicle = serializers.PrimaryKeyRelatedField(queryset=Vehicle.objects.all())
    color = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    discount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=0)
    promotion = serializers.PrimaryKeyRelatedField(
        queryset=Promotion.objects.all(),
        required=False,
        allow_null=True,
    )
    options = serializers.PrimaryKeyRelatedField(
        queryset=VehicleOption.objects.all(),
        many=True,
        required=False,
    )
    accessories = serializers.PrimaryKeyRelatedField(
        queryset=Accessory.objects.all(),
        many=True,
        required=False,
    )


class OrderCreateSerializer(serializers.Serializer):
    """
    dealership defaults to the caller's own dealership.
    """

    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all())
    dealership = serializers.PrimaryKeyRelatedField(
        queryset=Dealership.objects.filter(is_active=True),
        required=False,
    )
    payment_method = serializers.ChoiceField(
        choices=Order.PAYMENT_METHOD_CHOICES,
        default=Order.PAYMENT_CASH,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = OrderItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required.")
        return value


class PaymentCommandSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, required=False)
    reference = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class OrderActionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
