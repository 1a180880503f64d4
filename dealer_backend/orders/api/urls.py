# orders/api/urls.py

"""
ORDERS API URLS

    /api/orders/                          list / create
    /api/orders/<uuid>/                   retrieve
    /api/orders/<uuid>/payments/          GET history / POST payment
    /api/orders/<uuid>/deliver/
    /api/orders/<uuid>/complete/
    /api/orders/<uuid>/cancel/
    /api/orders/<uuid>/retry-allocation/
    /api/orders/<uuid>/status-logs/
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from orders.api.views import OrderViewSet

router = SimpleRouter()
router.register(r"", OrderViewSet, basename="orders")

urlpatterns = [
    path("", include(router.urls)),
]
