"""
MORIS Portal — Collaborator Errors
====================================
Raised by PortalBackend implementations. The engine maps them onto
outcome values (FAILED, CONFLICT) for user actions, and onto the view's
recoverable error indicator for fetches.

Nothing here is fatal to the process. Every failure is scoped to a
single project view.
"""


class PortalError(Exception):
    """Base error for collaborator operations."""
    pass


class TransportError(PortalError):
    """A fetch or submit did not reach the server or got no answer."""

    retryable = True

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        super().__init__(
            f"Transport failure during '{operation}'"
            + (f": {message}" if message else ".")
        )


class ConflictError(PortalError):
    """The event was already resolved by someone else."""

    retryable = False

    def __init__(self, event_id: str, current_status: str):
        self.event_id = event_id
        self.current_status = current_status
        super().__init__(
            f"Event '{event_id}' is already {current_status}; "
            f"only pending events can be resolved."
        )


class NotFoundError(PortalError):
    """The referenced project, event or notification does not exist."""

    retryable = False

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found.")
