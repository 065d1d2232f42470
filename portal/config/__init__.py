"""
MORIS Config — Public API
===========================
Engine tunables read from the Django settings module.
"""

from portal.config.settings import (
    DEFAULTS,
    EngineSettings,
    get_engine_settings,
)

__all__ = [
    "DEFAULTS",
    "EngineSettings",
    "get_engine_settings",
]
