"""
MORIS Events — Errors
=======================
Raised while constructing event requests, before anything is submitted.
Reading events (parsing, projection) never raises these.
"""


class EventModelError(Exception):
    """Base error for the event model."""
    pass


class UnknownEventType(EventModelError):
    """A request was built for a type outside the closed enumeration."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Event type '{event_type}' is not a known project event type.")


class InvalidEventPayload(EventModelError):
    """Payload fields do not satisfy the shape required by the event type."""

    def __init__(self, event_type: str, message: str):
        self.event_type = event_type
        super().__init__(f"Invalid payload for '{event_type}': {message}")
