# inventory/api/urls.py

"""
INVENTORY URLS

    /api/inventory/intake/                  POST manufacturer intake
    /api/inventory/batches/                 list (filter: vehicle, color, owner_type, owner_id, in_stock)
    /api/inventory/batches/<id>/movements/  batch journal
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import StockBatchViewSet, StockIntakeView

router = DefaultRouter()
router.register(r"batches", StockBatchViewSet, basename="stock-batches")

urlpatterns = [
    path("intake/", StockIntakeView.as_view(), name="stock-intake"),
    path("", include(router.urls)),
]
