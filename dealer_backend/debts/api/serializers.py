# debts/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from debts.models import CustomerDebt, DealerDebtPayment, DealerManufacturerDebt, DebtObligation, DebtSettlement


class CustomerDebtSerializer(serializers.ModelSerializer):
    order_code = serializers.CharField(source="order.code", read_only=True)
    customer_name = serializers.CharField(source="customer.full_name", read_only=True)

    class Meta:
        model = CustomerDebt
        fields = [
            "id",
            "customer",
            "customer_name",
            "dealership",
            "order",
            "order_code",
            "total_amount",
            "paid_amount",
            "remaining_amount",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DebtSettlementSerializer(serializers.ModelSerializer):
    class Meta:
        model = DebtSettlement
        fields = [
            "id",
            "obligation",
            "order",
            "order_code",
            "payment",
            "payment_reference",
            "quantity_sold",
            "amount",
            "settled_at",
        ]
        read_only_fields = fields


class DebtObligationSerializer(serializers.ModelSerializer):
    open_amount = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = DebtObligation
        fields = [
            "id",
            "amount",
            "settled_amount",
            "open_amount",
            "vehicle",
            "quantity",
            "source_reference",
            "created_at",
        ]
        read_only_fields = fields


class DealerDebtSerializer(serializers.ModelSerializer):
    """
    Aggregated dealer → manufacturer debt.

    settled_by_orders lists every settlement row; their amounts always sum
    to total_amount - remaining_amount.
    """

    dealership_name = serializers.CharField(source="dealership.name", read_only=True)
    manufacturer_name = serializers.CharField(source="manufacturer.name", read_only=True)
    settled_by_orders = DebtSettlementSerializer(many=True, read_only=True)
    obligations = DebtObligationSerializer(many=True, read_only=True)

    class Meta:
        model = DealerManufacturerDebt
        fields = [
            "id",
            "dealership",
            "dealership_name",
            "manufacturer",
            "manufacturer_name",
            "total_amount",
            "paid_amount",
            "remaining_amount",
            "status",
            "obligations",
            "settled_by_orders",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DealerDebtPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = DealerDebtPayment
        fields = ["id", "debt", "amount", "method", "reference", "note", "paid_by", "paid_at"]
        read_only_fields = fields


class DealerDebtPaymentCommandSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    reference = serializers.CharField(max_length=64)
    method = serializers.ChoiceField(choices=DealerDebtPayment.METHOD_CHOICES, default="bank")
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
