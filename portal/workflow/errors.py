"""
MORIS Workflow — Errors
=========================
Lifecycle violations. An event leaves PENDING exactly once.
"""


class WorkflowError(Exception):
    """Base error for the approval workflow."""
    pass


class InvalidTransition(WorkflowError):
    """Requested status change is not pending → approved | rejected."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition event from '{current}' to '{target}'. "
            f"Only pending events can be approved or rejected."
        )
