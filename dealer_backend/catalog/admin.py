# catalog/admin.py

from django.contrib import admin

from catalog.models import Accessory, Customer, Dealership, Manufacturer, Promotion, Vehicle, VehicleOption


@admin.register(Manufacturer)
class ManufacturerAdmin(admin.ModelAdmin):
    list_display = ("name", "country", "is_active")
    search_fields = ("name",)


@admin.register(Dealership)
class DealershipAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "is_active")
    search_fields = ("name", "code")


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "manufacturer", "price", "status")
    list_filter = ("status", "manufacturer")
    search_fields = ("name", "sku")


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "value", "dealership", "start_date", "end_date", "status")
    list_filter = ("status", "type")


admin.site.register(VehicleOption)
admin.site.register(Accessory)
admin.site.register(Customer)
