"""
MORIS Session — Errors
========================
Refresh bus registration errors. Publishing never raises.
"""


class RefreshBusError(Exception):
    """Base error for refresh bus operations."""
    pass


class InvalidTopic(RefreshBusError):
    """Topic is empty or not a string."""

    def __init__(self, topic):
        self.topic = topic
        super().__init__(f"Refresh topic '{topic}' must be a non-empty string.")


class DuplicateSubscriber(RefreshBusError):
    """Same handler already registered for this topic."""

    def __init__(self, topic: str, handler_name: str):
        self.topic = topic
        self.handler_name = handler_name
        super().__init__(
            f"Handler '{handler_name}' already registered for topic '{topic}'."
        )
