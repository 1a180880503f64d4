# catalog/services/promotions.py

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from catalog.models import Promotion

logger = logging.getLogger("catalog")


@transaction.atomic
def deactivate_expired_promotions(*, now=None) -> int:
    now = now or timezone.now()
    updated = (
        Promotion.objects
        .filter(status=Promotion.STATUS_ACTIVE, end_date__lt=now)
        .update(status=Promotion.STATUS_INACTIVE)
    )
    if updated:
        logger.info("Expired promotions deactivated", extra={"count": updated})
    return updated
