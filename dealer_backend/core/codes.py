# core/codes.py

from __future__ import annotations

import uuid

from django.utils import timezone


def generate_code(prefix: str, *, at=None) -> str:
    """
    Human-readable business code: <PREFIX>yyMMddHHmmss-<4 hex>.
    e.g. ORD251019143005-9F3A, REQ251019143005-0B1C
    """
    at = timezone.localtime(at or timezone.now())
    return f"{prefix}{at.strftime('%y%m%d%H%M%S')}-{uuid.uuid4().hex[:4].upper()}"
