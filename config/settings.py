"""
MORIS – Django Settings (Infrastructure Only)
===============================================
Django serves as the configuration and logging container for the
event engine. The engine owns no models, URLs or views: persistence
and transport belong to the server, not to this package.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("MORIS_SECRET_KEY", "moris-engine-dev-key")

DEBUG = os.environ.get("MORIS_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = []

# ── Database ──────────────────────────────────────────────────
# Unused by the engine; Django requires the key.
DATABASES = {}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Event Engine ──────────────────────────────────────────────
# Read through portal.config.get_engine_settings(); missing keys
# fall back to portal.config.DEFAULTS.
EVENT_ENGINE = {
    "PENDING_EVENTS_POLL_SECONDS": float(
        os.environ.get("MORIS_PENDING_EVENTS_POLL_SECONDS", "30")
    ),
    "NOTIFICATIONS_POLL_SECONDS": float(
        os.environ.get("MORIS_NOTIFICATIONS_POLL_SECONDS", "30")
    ),
    "APPROVAL_CAPABILITY": "project.event.approve",
    "NOTIFICATION_REFRESH_TOPIC": "notifications:should-refresh",
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "moris": {
            "handlers": ["console"],
            "level": os.environ.get("MORIS_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
