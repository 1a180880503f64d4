# replenishment/api/urls.py

"""
REQUEST WORKFLOW URLS

    /api/requests/order-requests/                 list / create
    /api/requests/order-requests/<uuid>/approve/
    /api/requests/order-requests/<uuid>/reject/
    /api/requests/vehicle-requests/               list
    /api/requests/vehicle-requests/<uuid>/approve/   (distribution)
    /api/requests/vehicle-requests/<uuid>/reject/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from replenishment.api.views import OrderRequestViewSet, VehicleRequestViewSet

router = DefaultRouter()
router.register(r"order-requests", OrderRequestViewSet, basename="order-requests")
router.register(r"vehicle-requests", VehicleRequestViewSet, basename="vehicle-requests")

urlpatterns = [
    path("", include(router.urls)),
]
