# catalog/api/views.py

from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, viewsets
from rest_framework.permissions import IsAuthenticated

from catalog.api.serializers import (
    AccessorySerializer,
    CustomerSerializer,
    PromotionSerializer,
    VehicleOptionSerializer,
    VehicleSerializer,
)
from catalog.models import Accessory, Customer, Promotion, Vehicle, VehicleOption
from permissions.roles import (
    CAP_CATALOG_EDIT,
    CAP_CATALOG_VIEW,
    CAP_ORDERS_CREATE,
    CAP_ORDERS_VIEW,
    HasAnyCapability,
    HasCapability,
    scope_queryset,
)


class _CatalogViewSet(viewsets.ModelViewSet):
    """
    Reads need catalog.view; writes need catalog.edit. No deletes.
    """

    http_method_names = ["get", "post", "patch", "head", "options"]
    permission_classes = [IsAuthenticated]

    required_capability = None

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            self.required_capability = CAP_CATALOG_VIEW
        else:
            self.required_capability = CAP_CATALOG_EDIT
        return [IsAuthenticated(), HasCapability()]


@extend_schema(tags=["Catalog"])
class VehicleViewSet(_CatalogViewSet):
    serializer_class = VehicleSerializer
    filterset_fields = ["manufacturer", "status"]

    def get_queryset(self):
        return Vehicle.objects.select_related("manufacturer").order_by("name")


@extend_schema(tags=["Catalog"])
class VehicleOptionViewSet(_CatalogViewSet):
    serializer_class = VehicleOptionSerializer
    queryset = VehicleOption.objects.all().order_by("name")


@extend_schema(tags=["Catalog"])
class AccessoryViewSet(_CatalogViewSet):
    serializer_class = AccessorySerializer
    queryset = Accessory.objects.all().order_by("name")


@extend_schema(tags=["Catalog"])
class PromotionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PromotionSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_CATALOG_VIEW
    filterset_fields = ["status", "dealership", "type"]

    def get_queryset(self):
        qs = Promotion.objects.prefetch_related("vehicles").order_by("-start_date")
        dealership_id = getattr(self.request.user, "dealership_id", None)
        if dealership_id:
            qs = qs.filter(Q(dealership__isnull=True) | Q(dealership_id=dealership_id))
        return qs


@extend_schema(tags=["Catalog"])
class CustomerViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Dealer customers. Created by sales staff, bound to their dealership.
    """

    serializer_class = CustomerSerializer
    permission_classes = [IsAuthenticated]

    required_any_capabilities = None

    def get_permissions(self):
        if self.action == "create":
            self.required_any_capabilities = {CAP_ORDERS_CREATE}
        else:
            self.required_any_capabilities = {CAP_ORDERS_VIEW, CAP_ORDERS_CREATE}
        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        qs = Customer.objects.order_by("full_name")
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(full_name__icontains=search) | Q(phone__icontains=search))
        return scope_queryset(qs, self.request.user, dealership_field="dealership_id")

    def perform_create(self, serializer):
        serializer.save(dealership_id=getattr(self.request.user, "dealership_id", None))
