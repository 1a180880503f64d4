# inventory/admin.py

from django.contrib import admin

from inventory.models import StockBatch, StockMovement, StockTransfer


# ======================================================
# LEDGER ROWS ARE SERVICE-MANAGED: read-only in admin
# ======================================================

class _ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockBatch)
class StockBatchAdmin(_ReadOnlyAdmin):
    list_display = ("id", "vehicle", "color", "owner_type", "owner_id", "quantity", "remaining_quantity", "received_at")
    list_filter = ("owner_type",)


@admin.register(StockMovement)
class StockMovementAdmin(_ReadOnlyAdmin):
    list_display = ("batch", "movement_type", "reason", "quantity", "reference", "created_at")
    list_filter = ("reason",)
    search_fields = ("reference",)


@admin.register(StockTransfer)
class StockTransferAdmin(_ReadOnlyAdmin):
    list_display = ("vehicle", "color", "from_owner_type", "to_owner_type", "quantity", "transferred_at")
