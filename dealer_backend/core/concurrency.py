# core/concurrency.py

"""
CONCURRENCY HELPERS

retry_on_conflict:
- Re-runs an engine entry point when it loses a race
  (ConcurrentModification) or the database reports a lock conflict
  (OperationalError: deadlock / lock timeout / "database is locked").
- Bounded exponential backoff, configured via settings:
    CONCURRENCY_MAX_RETRIES      (default 3)
    CONCURRENCY_BACKOFF_SECONDS  (default 0.05)
- Never retries inside an enclosing atomic block: the outer transaction is
  already poisoned, so the error must surface to whoever owns it.
"""

from __future__ import annotations

import functools
import logging
import time

from django.conf import settings
from django.db import OperationalError, transaction

from core.exceptions import ConcurrentModification

logger = logging.getLogger("core.concurrency")


def _retry_settings() -> tuple[int, float]:
    retries = int(getattr(settings, "CONCURRENCY_MAX_RETRIES", 3))
    backoff = float(getattr(settings, "CONCURRENCY_BACKOFF_SECONDS", 0.05))
    return max(0, retries), max(0.0, backoff)


def retry_on_conflict(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if transaction.get_connection().in_atomic_block:
            return func(*args, **kwargs)

        max_retries, backoff = _retry_settings()
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except (ConcurrentModification, OperationalError) as exc:
                if attempt >= max_retries:
                    logger.warning(
                        "Conflict retries exhausted",
                        extra={"operation": func.__name__, "attempts": attempt + 1},
                    )
                    if isinstance(exc, ConcurrentModification):
                        raise
                    raise ConcurrentModification(str(exc), operation=func.__name__) from exc

                delay = backoff * (2 ** attempt)
                logger.info(
                    "Retrying after conflict",
                    extra={"operation": func.__name__, "attempt": attempt + 1, "delay": delay},
                )
                attempt += 1
                if delay:
                    time.sleep(delay)

    return wrapper
