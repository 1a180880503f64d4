# inventory/api/views.py

"""
INVENTORY API

- batches: read-only FIFO batch listing (filterable), plus per-batch movements
- intake:  manufacturer stock registration (batch + INTAKE movement)

Scoping:
- dealer roles see their dealership's batches only
- manufacturer staff see their manufacturer's batches only
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import engine_error_response, error_response
from core.exceptions import EngineError
from inventory.api.serializers import StockBatchSerializer, StockIntakeSerializer, StockMovementSerializer
from inventory.models import OwnerType, StockBatch
from inventory.services.stock_ledger import Owner, register_stock
from permissions.roles import (
    CAP_INVENTORY_INTAKE,
    CAP_INVENTORY_VIEW,
    DEALER_ROLES,
    MANUFACTURER_ROLES,
    HasCapability,
    Role,
    parse_role,
)


def _scope_batches(qs, user):
    role = parse_role(getattr(user, "role", None))
    if role == Role.ADMIN:
        return qs
    if role in DEALER_ROLES and user.dealership_id:
        return qs.filter(owner_type=OwnerType.DEALER, owner_id=user.dealership_id)
    if role in MANUFACTURER_ROLES and user.manufacturer_id:
        return qs.filter(owner_type=OwnerType.MANUFACTURER, owner_id=user.manufacturer_id)
    return qs.none()


@extend_schema(tags=["Inventory"])
class StockBatchViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = StockBatchSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW
    filterset_fields = ["vehicle", "color", "owner_type", "owner_id"]

    def get_queryset(self):
        qs = StockBatch.objects.select_related("vehicle").order_by("received_at", "id")

        in_stock = (self.request.query_params.get("in_stock") or "").strip().lower()
        if in_stock in ("1", "true", "yes"):
            qs = qs.filter(remaining_quantity__gt=0)

        return _scope_batches(qs, self.request.user)

    @action(detail=True, methods=["get"], url_path="movements")
    def movements(self, request, pk=None):
        batch = self.get_object()
        return Response(StockMovementSerializer(batch.movements.order_by("created_at"), many=True).data)


@extend_schema(tags=["Inventory"], request=StockIntakeSerializer, responses={201: StockBatchSerializer})
class StockIntakeView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_INTAKE

    def post(self, request):
        command = StockIntakeSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        v = command.validated_data
        vehicle = v["vehicle"]

        if v.get("owner_type"):
            owner = Owner(v["owner_type"], v["owner_id"])
        else:
            owner = Owner.manufacturer(vehicle.manufacturer_id)

        user_mfr = getattr(request.user, "manufacturer_id", None)
        if parse_role(request.user.role) in MANUFACTURER_ROLES and (
            owner.owner_type != OwnerType.MANUFACTURER or owner.owner_id != user_mfr
        ):
            return error_response(
                code="FORBIDDEN_OWNER",
                message="You can only register stock for your own manufacturer.",
                http_status=status.HTTP_403_FORBIDDEN,
            )

        try:
            batch = register_stock(
                vehicle=vehicle,
                owner=owner,
                quantity=v["quantity"],
                color=v.get("color", ""),
                unit_cost=v.get("unit_cost"),
                received_at=v.get("received_at"),
                reference=v.get("reference", ""),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)
        except DjangoValidationError as exc:
            return error_response(
                code="VALIDATION_ERROR",
                message="; ".join(exc.messages),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(StockBatchSerializer(batch).data, status=status.HTTP_201_CREATED)
