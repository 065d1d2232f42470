"""
MORIS Workflow — Public API
=============================
Event lifecycle and the approve / reject workflow.
"""

from portal.workflow.approval import (
    ApprovalWorkflow,
    ResolutionOutcome,
    ResolutionStatus,
)
from portal.workflow.errors import InvalidTransition, WorkflowError
from portal.workflow.states import Decision, apply_decision, ensure_transition

__all__ = [
    "ApprovalWorkflow",
    "Decision",
    "InvalidTransition",
    "ResolutionOutcome",
    "ResolutionStatus",
    "WorkflowError",
    "apply_decision",
    "ensure_transition",
]
