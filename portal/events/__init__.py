"""
MORIS Events
==============
Closed event taxonomy, payload shapes and request builders.
"""

from portal.events.errors import (
    EventModelError,
    InvalidEventPayload,
    UnknownEventType,
)
from portal.events.models import Event, EventRequest
from portal.events.payloads import PAYLOAD_TYPES, verify_catalogue
from portal.events.types import (
    EventStatus,
    EventType,
    friendly_name,
    parse_event_type,
)

__all__ = [
    "Event",
    "EventModelError",
    "EventRequest",
    "EventStatus",
    "EventType",
    "InvalidEventPayload",
    "PAYLOAD_TYPES",
    "UnknownEventType",
    "friendly_name",
    "parse_event_type",
    "verify_catalogue",
]
