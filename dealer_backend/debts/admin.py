# debts/admin.py

from django.contrib import admin

from debts.models import CustomerDebt, DealerManufacturerDebt, DebtSettlement


@admin.register(CustomerDebt)
class CustomerDebtAdmin(admin.ModelAdmin):
    list_display = ("order", "customer", "total_amount", "paid_amount", "remaining_amount", "status")
    list_filter = ("status",)


@admin.register(DealerManufacturerDebt)
class DealerManufacturerDebtAdmin(admin.ModelAdmin):
    list_display = ("dealership", "manufacturer", "total_amount", "paid_amount", "remaining_amount", "status")
    list_filter = ("status",)


@admin.register(DebtSettlement)
class DebtSettlementAdmin(admin.ModelAdmin):
    list_display = ("debt", "order_code", "payment_reference", "amount", "settled_at")
    search_fields = ("order_code", "payment_reference")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
