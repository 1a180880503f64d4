# catalog/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from catalog.api.views import (
    AccessoryViewSet,
    CustomerViewSet,
    PromotionViewSet,
    VehicleOptionViewSet,
    VehicleViewSet,
)

router = DefaultRouter()
router.register(r"vehicles", VehicleViewSet, basename="vehicles")
router.register(r"options", VehicleOptionViewSet, basename="vehicle-options")
router.register(r"accessories", AccessoryViewSet, basename="accessories")
router.register(r"promotions", PromotionViewSet, basename="promotions")
router.register(r"customers", CustomerViewSet, basename="customers")

urlpatterns = [
    path("", include(router.urls)),
]
