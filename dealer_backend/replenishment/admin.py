# replenishment/admin.py

from django.contrib import admin

from replenishment.models import OrderRequest, OrderRequestItem, RequestVehicle


class OrderRequestItemInline(admin.TabularInline):
    model = OrderRequestItem
    extra = 0


@admin.register(OrderRequest)
class OrderRequestAdmin(admin.ModelAdmin):
    list_display = ("code", "dealership", "order", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("code",)
    inlines = [OrderRequestItemInline]


@admin.register(RequestVehicle)
class RequestVehicleAdmin(admin.ModelAdmin):
    list_display = ("vehicle", "color", "quantity", "dealership", "status", "processed_at")
    list_filter = ("status",)
