# catalog/api/serializers.py

from rest_framework import serializers

from catalog.models import Accessory, Customer, Promotion, Vehicle, VehicleOption


class VehicleSerializer(serializers.ModelSerializer):
    manufacturer_name = serializers.CharField(source="manufacturer.name", read_only=True)

    class Meta:
        model = Vehicle
        fields = [
            "id",
            "manufacturer",
            "manufacturer_name",
            "name",
            "model_name",
            "version",
            "sku",
            "price",
            "color_options",
            "range_km",
            "battery_capacity_kwh",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "manufacturer_name", "created_at", "updated_at"]


class VehicleOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleOption
        fields = ["id", "name", "category", "price"]


class AccessorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Accessory
        fields = ["id", "name", "type", "price"]


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "dealership", "full_name", "phone", "email", "address", "created_at"]
        read_only_fields = ["id", "dealership", "created_at"]


class PromotionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Promotion
        fields = [
            "id",
            "name",
            "description",
            "type",
            "value",
            "dealership",
            "vehicles",
            "start_date",
            "end_date",
            "status",
        ]
        read_only_fields = fields
