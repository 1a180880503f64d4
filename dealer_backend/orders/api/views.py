# orders/api/views.py

"""
ORDER API

- list/retrieve: dealership-scoped order views (items + used_stocks)
- create:        price + create order (status pending)
- payments:      GET history / POST record a customer payment
- deliver / complete / cancel / retry-allocation: state machine commands
- status-logs:   immutable transition history
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.api import engine_error_response, error_response
from core.exceptions import EngineError
from orders.api.serializers import (
    OrderActionSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    OrderStatusLogSerializer,
    PaymentCommandSerializer,
    PaymentSerializer,
)
from orders.models import Order
from orders.services.order_state_machine import (
    cancel_order,
    complete_order,
    confirm_delivery,
    create_order,
    retry_allocation as retry_order_allocation,
)
from orders.services.payment_service import record_payment
from permissions.roles import (
    CAP_ORDERS_CANCEL,
    CAP_ORDERS_CREATE,
    CAP_ORDERS_DELIVER,
    CAP_ORDERS_PAY,
    CAP_ORDERS_VIEW,
    ActorContext,
    HasCapability,
    scope_queryset,
)

ACTION_CAPABILITIES = {
    "create": CAP_ORDERS_CREATE,
    "payments": CAP_ORDERS_PAY,
    "deliver": CAP_ORDERS_DELIVER,
    "complete": CAP_ORDERS_DELIVER,
    "cancel": CAP_ORDERS_CANCEL,
    "retry_allocation": CAP_ORDERS_PAY,
}


@extend_schema(tags=["Orders"])
class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "customer", "dealership", "payment_method"]

    required_capability = None

    def get_permissions(self):
        # reset per request
        self.required_capability = ACTION_CAPABILITIES.get(self.action, CAP_ORDERS_VIEW)
        if self.action == "payments" and self.request.method == "GET":
            self.required_capability = CAP_ORDERS_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = (
            Order.objects
            .select_related("customer", "dealership", "salesperson")
            .prefetch_related("items", "items__vehicle", "items__used_stocks")
            .order_by("-created_at")
        )
        return scope_queryset(qs, self.request.user, dealership_field="dealership_id")

    def get_serializer_class(self):
        if self.action == "create":
            return OrderCreateSerializer
        if self.action == "payments" and self.request.method == "POST":
            return PaymentCommandSerializer
        if self.action in {"deliver", "complete", "cancel"}:
            return OrderActionSerializer
        return OrderSerializer

    def _actor(self):
        return ActorContext.from_user(self.request.user)

    def _order_response(self, order, http_status=status.HTTP_200_OK):
        fresh = self.get_queryset().get(pk=order.pk)
        return Response(OrderSerializer(fresh).data, status=http_status)

    # --------------------------------------------------
    # CREATE
    # --------------------------------------------------
    def create(self, request, *args, **kwargs):
        command = OrderCreateSerializer(data=request.data, context={"request": request})
        command.is_valid(raise_exception=True)
        v = command.validated_data

        dealership = v.get("dealership") or getattr(request.user, "dealership", None)
        if dealership is None:
            return error_response(
                code="VALIDATION_ERROR",
                message="dealership is required",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        actor = self._actor()
        if actor.dealership_id and actor.dealership_id != dealership.pk:
            return error_response(
                code="FORBIDDEN_DEALERSHIP",
                message="You can only create orders for your own dealership.",
                http_status=status.HTTP_403_FORBIDDEN,
            )

        try:
            order = create_order(
                actor=actor,
                customer=v["customer"],
                dealership=dealership,
                items=[dict(line) for line in v["items"]],
                payment_method=v["payment_method"],
                notes=v.get("notes", ""),
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return self._order_response(order, http_status=status.HTTP_201_CREATED)

    # --------------------------------------------------
    # PAYMENTS
    # --------------------------------------------------
    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request, pk=None):
        order = self.get_object()

        if request.method == "GET":
            return Response(PaymentSerializer(order.payments.order_by("paid_at"), many=True).data)

        command = PaymentCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        v = command.validated_data

        try:
            outcome = record_payment(
                actor=self._actor(),
                order=order,
                amount=v["amount"],
                method=v.get("method") or "",
                reference=v.get("reference", ""),
                note=v.get("note", ""),
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {
                "payment": PaymentSerializer(outcome.payment).data,
                "settlement_count": len(outcome.settlements),
                "order": OrderSerializer(self.get_queryset().get(pk=order.pk)).data,
            },
            status=status.HTTP_201_CREATED,
        )

    # --------------------------------------------------
    # STATE MACHINE COMMANDS
    # --------------------------------------------------
    def _run_command(self, request, service, *, build_kwargs):
        order = self.get_object()
        command = OrderActionSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            updated = service(actor=self._actor(), order=order, **build_kwargs(command.validated_data))
        except EngineError as exc:
            return engine_error_response(exc)
        return self._order_response(updated)

    @action(detail=True, methods=["post"], url_path="deliver")
    def deliver(self, request, pk=None):
        return self._run_command(request, confirm_delivery, build_kwargs=lambda v: {"notes": v["notes"]})

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        return self._run_command(request, complete_order, build_kwargs=lambda v: {"notes": v["notes"]})

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        return self._run_command(request, cancel_order, build_kwargs=lambda v: {"reason": v["reason"]})

    @action(detail=True, methods=["post"], url_path="retry-allocation")
    def retry_allocation(self, request, pk=None):
        order = self.get_object()
        try:
            updated = retry_order_allocation(actor=self._actor(), order=order)
        except EngineError as exc:
            return engine_error_response(exc)
        return self._order_response(updated)

    @action(detail=True, methods=["get"], url_path="status-logs")
    def status_logs(self, request, pk=None):
        order = self.get_object()
        logs = order.status_logs.order_by("created_at", "id")
        return Response(OrderStatusLogSerializer(logs, many=True).data)
