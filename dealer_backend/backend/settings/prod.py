# backend/settings/prod.py
"""
PATH: backend/settings/prod.py

PRODUCTION SETTINGS

Fails closed at import time:
- SECRET_KEY, ALLOWED_HOSTS, CORS/CSRF origins must be set
- DATABASE_URL must point at Postgres (row locks are required by the ledgers)
- engine knobs must be in range
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import (  # explicit for Ruff (F405)
    BASE_DIR,
    CONCURRENCY_MAX_RETRIES,
    MIDDLEWARE,
    ORDER_DEPOSIT_MIN_RATIO,
    env,
)


def _required(name: str) -> str:
    value = (env(name, default="") or "").strip()
    if not value:
        raise ImproperlyConfigured(f"{name} must be set in production.")
    return value


def _https_origins(name: str) -> list[str]:
    origins = env.list(name, default=[])
    if not origins:
        raise ImproperlyConfigured(f"{name} must be set in production.")
    for origin in origins:
        if not origin.startswith("https://"):
            raise ImproperlyConfigured(f"{name} must be https:// in production ({origin}).")
        if "localhost" in origin or "127.0.0.1" in origin:
            raise ImproperlyConfigured(f"Remove {origin} from {name} in production.")
    return origins


DEBUG = False

SECRET_KEY = _required("SECRET_KEY")
if SECRET_KEY == "dev-insecure-change-me":
    raise ImproperlyConfigured("SECRET_KEY must be set to a strong value in production.")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
if not ALLOWED_HOSTS:
    raise ImproperlyConfigured("ALLOWED_HOSTS must be set in production.")

# ----------------------------
# Database
# ----------------------------
# select_for_update is a no-op on SQLite; the stock and debt ledgers need real row locks.
if not _required("DATABASE_URL").startswith(("postgres://", "postgresql://")):
    raise ImproperlyConfigured("Production requires a Postgres DATABASE_URL.")

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)
# lock waits surface as OperationalError, which retry_on_conflict turns into a retry
DATABASES["default"].setdefault("OPTIONS", {})["options"] = (
    f"-c lock_timeout={env.int('DB_LOCK_TIMEOUT_MS', default=5000)}"
)

# ----------------------------
# Engine knobs
# ----------------------------
if not (Decimal("0") < ORDER_DEPOSIT_MIN_RATIO <= Decimal("1")):
    raise ImproperlyConfigured("ORDER_DEPOSIT_MIN_RATIO must be in (0, 1].")
if CONCURRENCY_MAX_RETRIES < 1:
    raise ImproperlyConfigured("CONCURRENCY_MAX_RETRIES must be at least 1 in production.")

# ----------------------------
# Static files (WhiteNoise)
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE = [*MIDDLEWARE]
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# TLS / headers / cookies
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
SECURE_CROSS_ORIGIN_OPENER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

SESSION_COOKIE_SECURE = CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = CSRF_COOKIE_SAMESITE = "Lax"

# JWT in headers only; no credentialed cross-origin requests
CORS_ALLOWED_ORIGINS = _https_origins("CORS_ALLOWED_ORIGINS")
CSRF_TRUSTED_ORIGINS = _https_origins("CSRF_TRUSTED_ORIGINS")
CORS_ALLOW_CREDENTIALS = False
