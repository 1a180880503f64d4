# catalog/management/commands/deactivate_expired_promotions.py

"""
Periodic sweep: switch promotions whose end_date has passed to inactive.

Run it from an external scheduler (cron or similar), e.g. every hour:
    python manage.py deactivate_expired_promotions
"""

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils import timezone

from catalog.models import Promotion
from catalog.services.promotions import deactivate_expired_promotions


class Command(BaseCommand):
    help = "Deactivate promotions whose end_date is in the past."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report how many promotions would be deactivated.",
        )

    def handle(self, *args, **options):
        if options.get("dry_run"):
            count = Promotion.objects.filter(
                status=Promotion.STATUS_ACTIVE,
                end_date__lt=timezone.now(),
            ).count()
            self.stdout.write(f"{count} promotion(s) would be deactivated.")
            return

        count = deactivate_expired_promotions()
        self.stdout.write(self.style.SUCCESS(f"Deactivated {count} expired promotion(s)."))
