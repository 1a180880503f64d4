# orders/apps.py

"""
ORDERS APP CONFIG

Customer orders, payments, stock allocation trace (used_stocks)
and the immutable order status log.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
