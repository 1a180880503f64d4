# orders/admin.py

from django.contrib import admin

from orders.models import Order, OrderStatusLog, Payment


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("code", "dealership", "customer", "status", "final_amount", "paid_amount", "created_at")
    readonly_fields = ("code", "status", "subtotal_amount", "final_amount", "paid_amount", "created_at")
    list_filter = ("status", "payment_method")
    search_fields = ("code",)


@admin.register(OrderStatusLog)
class OrderStatusLogAdmin(admin.ModelAdmin):
    list_display = ("order", "old_status", "new_status", "changed_by_name", "created_at")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("reference", "order", "amount", "method", "paid_at")
    search_fields = ("reference",)

    def has_change_permission(self, request, obj=None):
        return False
