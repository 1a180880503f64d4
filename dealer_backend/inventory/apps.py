# inventory/apps.py

"""
INVENTORY APP CONFIG

Stock ledger:
- StockBatch     (per vehicle/color/owner delivery, FIFO-consumed)
- StockMovement  (append-only journal)
- StockTransfer  (manufacturer → dealer distributions)
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Vehicle Inventory"
