# inventory/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from catalog.models import Vehicle
from inventory.models import OwnerType, StockBatch, StockMovement


class StockBatchSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source="vehicle.name", read_only=True)
    sku = serializers.CharField(source="vehicle.sku", read_only=True)

    class Meta:
        model = StockBatch
        fields = [
            "id",
            "vehicle",
            "vehicle_name",
            "sku",
            "color",
            "owner_type",
            "owner_id",
            "quantity",
            "remaining_quantity",
            "unit_cost",
            "received_at",
            "source_transfer",
            "created_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = ["id", "batch", "movement_type", "reason", "quantity", "reference", "performed_by", "created_at"]
        read_only_fields = fields


class StockIntakeSerializer(serializers.Serializer):
    """
    Manufacturer intake. owner defaults to the vehicle's manufacturer.
    """

    vehicle = serializers.PrimaryKeyRelatedField(queryset=Vehicle.objects.all())
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=Decimal("0"),
    )
    owner_type = serializers.ChoiceField(choices=OwnerType.choices, required=False)
    owner_id = serializers.UUIDField(required=False)
    received_at = serializers.DateTimeField(required=False)
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if bool(attrs.get("owner_type")) != bool(attrs.get("owner_id")):
            raise serializers.ValidationError("owner_type and owner_id must be provided together.")
        return attrs
