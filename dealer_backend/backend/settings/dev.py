# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS
SQLite by default (DATABASE_URL), verbose engine logging.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env  # explicit for Ruff (F405)

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1", "testserver"])

CORS_ALLOWED_ORIGINS = env.list(
    "CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"]
)

CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"]
)

CORS_ALLOW_CREDENTIALS = True

# Engine modules log at DEBUG locally unless LOG_LEVEL says otherwise
_dev_level = env.str("LOG_LEVEL", default="DEBUG").upper()
for _name in ("catalog", "inventory", "orders", "debts", "replenishment", "core.concurrency"):
    LOGGING["loggers"][_name]["level"] = _dev_level
