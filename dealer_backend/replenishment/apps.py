# replenishment/apps.py

"""
REPLENISHMENT APP CONFIG

Dealer resupply workflow:
- OrderRequest      (dealer staff → dealer manager approval)
- RequestVehicle    (per item, dealer → manufacturer distribution)
"""

from django.apps import AppConfig


class ReplenishmentConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "replenishment"
    verbose_name = "Vehicle Requests"
