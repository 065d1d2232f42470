"""
MORIS Config — Engine Settings
================================
Tunables live in django.conf.settings.EVENT_ENGINE, a plain dict.
Missing keys fall back to DEFAULTS. Values are validated once, when
EngineSettings is built, so a bad deployment fails at startup rather
than at the first poll.

Keys:
    PENDING_EVENTS_POLL_SECONDS   pending-event list polling interval
    NOTIFICATIONS_POLL_SECONDS    notification list polling interval
    APPROVAL_CAPABILITY           capability that lets a user resolve
                                  any pending event
    NOTIFICATION_REFRESH_TOPIC    refresh-bus topic for notification lists
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from django.conf import settings


DEFAULTS: Dict[str, Any] = {
    "PENDING_EVENTS_POLL_SECONDS": 30.0,
    "NOTIFICATIONS_POLL_SECONDS": 30.0,
    "APPROVAL_CAPABILITY": "project.event.approve",
    "NOTIFICATION_REFRESH_TOPIC": "notifications:should-refresh",
}


@dataclass(frozen=True)
class EngineSettings:
    pending_events_poll_seconds: float = DEFAULTS["PENDING_EVENTS_POLL_SECONDS"]
    notifications_poll_seconds: float = DEFAULTS["NOTIFICATIONS_POLL_SECONDS"]
    approval_capability: str = DEFAULTS["APPROVAL_CAPABILITY"]
    notification_refresh_topic: str = DEFAULTS["NOTIFICATION_REFRESH_TOPIC"]

    def __post_init__(self) -> None:
        for name in ("pending_events_poll_seconds", "notifications_poll_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"{name} must be a number.")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}.")
        for name in ("approval_capability", "notification_refresh_topic"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string.")

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "EngineSettings":
        merged = dict(DEFAULTS)
        merged.update(raw or {})
        return cls(
            pending_events_poll_seconds=merged["PENDING_EVENTS_POLL_SECONDS"],
            notifications_poll_seconds=merged["NOTIFICATIONS_POLL_SECONDS"],
            approval_capability=merged["APPROVAL_CAPABILITY"],
            notification_refresh_topic=merged["NOTIFICATION_REFRESH_TOPIC"],
        )


def get_engine_settings() -> EngineSettings:
    """Read EVENT_ENGINE from the active Django settings."""
    return EngineSettings.from_mapping(getattr(settings, "EVENT_ENGINE", None))
