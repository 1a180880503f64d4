# debts/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.api import engine_error_response
from core.exceptions import EngineError
from debts.api.serializers import (
    CustomerDebtSerializer,
    DealerDebtPaymentCommandSerializer,
    DealerDebtPaymentSerializer,
    DealerDebtSerializer,
)
from debts.models import CustomerDebt, DealerManufacturerDebt
from debts.services.debt_ledger import apply_dealer_payment
from permissions.roles import (
    CAP_DEBTS_PAY_MANUFACTURER,
    CAP_DEBTS_VIEW,
    CAP_ORDERS_VIEW,
    HasAnyCapability,
    HasCapability,
    scope_queryset,
)


@extend_schema(tags=["Debts"])
class CustomerDebtViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = CustomerDebtSerializer
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {CAP_DEBTS_VIEW, CAP_ORDERS_VIEW}
    filterset_fields = ["status", "customer", "dealership", "order"]

    def get_queryset(self):
        qs = CustomerDebt.objects.select_related("order", "customer").order_by("-created_at")
        return scope_queryset(qs, self.request.user, dealership_field="dealership_id")


@extend_schema(tags=["Debts"])
class DealerDebtViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Dealer → manufacturer debts.

    - list/retrieve: debts.view (scoped to own dealership / manufacturer)
    - payments:      GET history (debts.view) / POST direct payment (debts.pay_manufacturer)
    """

    serializer_class = DealerDebtSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "dealership", "manufacturer"]

    required_capability = None

    def get_permissions(self):
        self.required_capability = CAP_DEBTS_VIEW
        if self.action == "payments" and self.request.method == "POST":
            self.required_capability = CAP_DEBTS_PAY_MANUFACTURER
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = (
            DealerManufacturerDebt.objects
            .select_related("dealership", "manufacturer")
            .prefetch_related("obligations", "settled_by_orders")
            .order_by("dealership__name", "manufacturer__name")
        )
        return scope_queryset(
            qs,
            self.request.user,
            dealership_field="dealership_id",
            manufacturer_field="manufacturer_id",
        )

    def get_serializer_class(self):
        if self.action == "payments" and self.request.method == "POST":
            return DealerDebtPaymentCommandSerializer
        return DealerDebtSerializer

    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request, pk=None):
        debt = self.get_object()

        if request.method == "GET":
            return Response(DealerDebtPaymentSerializer(debt.payments.order_by("paid_at"), many=True).data)

        command = DealerDebtPaymentCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        v = command.validated_data

        try:
            payment = apply_dealer_payment(
                debt=debt,
                amount=v["amount"],
                reference=v["reference"],
                method=v["method"],
                note=v.get("note", ""),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {
                "payment": DealerDebtPaymentSerializer(payment).data,
                "debt": DealerDebtSerializer(self.get_queryset().get(pk=debt.pk)).data,
            },
            status=status.HTTP_201_CREATED,
        )
