# debts/apps.py

"""
DEBTS APP CONFIG

Two debt ledgers sharing one payment-application algorithm:
- CustomerDebt            (customer → dealer, one per order)
- DealerManufacturerDebt  (dealer → manufacturer, one per pair)
plus obligation-level settlement tracing (settled_by_orders).
"""

from django.apps import AppConfig


class DebtsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "debts"
    verbose_name = "Debt Ledgers"
