# catalog/apps.py

"""
CATALOG APP CONFIG

Reference data read by the fulfillment engine:
- Manufacturers / dealerships
- Vehicles (price, colors), options, accessories
- Customers
- Promotions
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Vehicle Catalog"
