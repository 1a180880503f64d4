# replenishment/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.api import engine_error_response, error_response
from core.exceptions import EngineError
from permissions.roles import (
    CAP_REQUESTS_APPROVE,
    CAP_REQUESTS_CREATE,
    CAP_REQUESTS_DISTRIBUTE,
    ActorContext,
    HasAnyCapability,
    HasCapability,
    scope_queryset,
)
from replenishment.api.serializers import (
    OrderRequestCreateSerializer,
    OrderRequestSerializer,
    RejectCommandSerializer,
    RequestVehicleSerializer,
)
from replenishment.models import OrderRequest, RequestVehicle
from replenishment.services.request_workflow import (
    approve_order_request,
    approve_vehicle_request,
    create_order_request,
    reject_order_request,
    reject_vehicle_request,
)

READ_CAPABILITIES = {CAP_REQUESTS_CREATE, CAP_REQUESTS_APPROVE, CAP_REQUESTS_DISTRIBUTE}


class _CapabilityViewSet(viewsets.GenericViewSet):
    """
    Per-action capability map; actions not listed need any READ capability.
    """

    permission_classes = [IsAuthenticated]
    action_capabilities: dict = {}

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        self.required_capability = None
        self.required_any_capabilities = None

        cap = self.action_capabilities.get(self.action)
        if cap:
            self.required_capability = cap
            return [IsAuthenticated(), HasCapability()]

        self.required_any_capabilities = READ_CAPABILITIES
        return [IsAuthenticated(), HasAnyCapability()]

    def _actor(self):
        return ActorContext.from_user(self.request.user)


# ======================================================
# ORDER REQUESTS (DEALER-INTERNAL)
# ======================================================

@extend_schema(tags=["Requests"])
class OrderRequestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    _CapabilityViewSet,
):
    serializer_class = OrderRequestSerializer
    filterset_fields = ["status", "dealership", "order"]
    action_capabilities = {
        "create": CAP_REQUESTS_CREATE,
        "approve": CAP_REQUESTS_APPROVE,
        "reject": CAP_REQUESTS_APPROVE,
    }

    def get_queryset(self):
        qs = (
            OrderRequest.objects
            .select_related("order", "dealership")
            .prefetch_related("items", "items__vehicle")
            .order_by("-created_at")
        )
        return scope_queryset(
            qs,
            self.request.user,
            dealership_field="dealership_id",
            manufacturer_field="items__vehicle__manufacturer_id",
        ).distinct()

    def get_serializer_class(self):
        if self.action == "create":
            return OrderRequestCreateSerializer
        if self.action == "reject":
            return RejectCommandSerializer
        return OrderRequestSerializer

    def create(self, request, *args, **kwargs):
        command = OrderRequestCreateSerializer(data=request.data)
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
                message="You can only create requests for your own dealership.",
                http_status=status.HTTP_403_FORBIDDEN,
            )

        try:
            req = create_order_request(
                actor=actor,
                dealership=dealership,
                items=[dict(line) for line in v["items"]],
                order=v.get("order"),
                notes=v.get("notes", ""),
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            OrderRequestSerializer(self.get_queryset().get(pk=req.pk)).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        req = self.get_object()
        try:
            result = approve_order_request(actor=self._actor(), order_request=req)
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {
                "order_request": OrderRequestSerializer(self.get_queryset().get(pk=req.pk)).data,
                "created": RequestVehicleSerializer(result.created, many=True).data,
                "skipped": [s.to_dict() for s in result.skipped],
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        req = self.get_object()
        command = RejectCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            rejected = reject_order_request(
                actor=self._actor(),
                order_request=req,
                reason=command.validated_data["reason"],
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(OrderRequestSerializer(rejected).data, status=status.HTTP_200_OK)


# ======================================================
# VEHICLE REQUESTS (MANUFACTURER DISTRIBUTION)
# ======================================================

@extend_schema(tags=["Requests"])
class VehicleRequestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    _CapabilityViewSet,
):
    serializer_class = RequestVehicleSerializer
    filterset_fields = ["status", "dealership", "vehicle", "order_request"]
    action_capabilities = {
        "approve": CAP_REQUESTS_DISTRIBUTE,
        "reject": CAP_REQUESTS_DISTRIBUTE,
    }

    def get_queryset(self):
        qs = (
            RequestVehicle.objects
            .select_related("vehicle", "order_request", "dealership")
            .order_by("-created_at")
        )
        return scope_queryset(
            qs,
            self.request.user,
            dealership_field="dealership_id",
            manufacturer_field="vehicle__manufacturer_id",
        )

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        rv = self.get_object()
        try:
            distributed = approve_vehicle_request(actor=self._actor(), request_vehicle=rv)
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(RequestVehicleSerializer(distributed).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        rv = self.get_object()
        try:
            rejected = reject_vehicle_request(
                actor=self._actor(),
                request_vehicle=rv,
                reason=str(request.data.get("reason") or ""),
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(RequestVehicleSerializer(rejected).data, status=status.HTTP_200_OK)
