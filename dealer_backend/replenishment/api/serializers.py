# replenishment/api/serializers.py

from rest_framework import serializers

from catalog.models import Dealership, Vehicle
from orders.models import Order
from replenishment.models import OrderRequest, OrderRequestItem, RequestVehicle


class OrderRequestItemSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source="vehicle.name", read_only=True)

    class Meta:
        model = OrderRequestItem
        fields = ["id", "vehicle", "vehicle_name", "color", "quantity"]
        read_only_fields = fields


class RequestVehicleSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source="vehicle.name", read_only=True)
    order_request_code = serializers.CharField(source="order_request.code", read_only=True, default=None)

    class Meta:
        model = RequestVehicle
        fields = [
            "id",
            "order_request",
            "order_request_code",
            "dealership",
            "vehicle",
            "vehicle_name",
            "color",
            "quantity",
            "status",
            "debt",
            "transfer",
            "notes",
            "processed_by",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


class OrderRequestSerializer(serializers.ModelSerializer):
    order_code = serializers.CharField(source="order.code", read_only=True, default=None)
    items = OrderRequestItemSerializer(many=True, read_only=True)

    class Meta:
        model = OrderRequest
        fields = [
            "id",
            "code",
            "dealership",
            "order",
            "order_code",
            "status",
            "notes",
            "rejection_reason",
            "requested_by",
            "decided_by",
            "decided_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields


# ======================================================
# COMMANDS
# ======================================================

class OrderRequestItemInputSerializer(serializers.Serializer):
    vehicle = serializers.PrimaryKeyRelatedField(queryset=Vehicle.objects.all())
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)


class OrderRequestCreateSerializer(serializers.Serializer):
    dealership = serializers.PrimaryKeyRelatedField(
        queryset=Dealership.objects.filter(is_active=True),
        required=False,
    )
    order = serializers.PrimaryKeyRelatedField(
        queryset=Order.objects.all(),
        required=False,
        allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = OrderRequestItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required.")
        return value


class RejectCommandSerializer(serializers.Serializer):
    reason = serializers.CharField()
