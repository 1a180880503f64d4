# debts/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from debts.api.views import CustomerDebtViewSet, DealerDebtViewSet

router = DefaultRouter()
router.register(r"customer", CustomerDebtViewSet, basename="customer-debts")
router.register(r"dealer", DealerDebtViewSet, basename="dealer-debts")

urlpatterns = [
    path("", include(router.urls)),
]
