"""
MORIS Workflow — Event Lifecycle
==================================
    PENDING → APPROVED   (terminal, folded into canonical server-side)
    PENDING → REJECTED   (terminal, discarded)

No other transition exists. Terminal states never change again.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Any

from portal.events.models import Event
from portal.events.types import EventStatus
from portal.workflow.errors import InvalidTransition


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> EventStatus:
        if self is Decision.APPROVE:
            return EventStatus.APPROVED
        return EventStatus.REJECTED

    @classmethod
    def parse(cls, value: Any) -> "Decision":
        if isinstance(value, Decision):
            return value
        text = str(value).strip().lower()
        if text in ("approve", "approved"):
            return cls.APPROVE
        if text in ("reject", "rejected"):
            return cls.REJECT
        raise ValueError(f"decision '{value}' must be 'approve' or 'reject'.")

    def __str__(self) -> str:
        return self.value


_ALLOWED = {
    EventStatus.PENDING: frozenset({EventStatus.APPROVED, EventStatus.REJECTED}),
    EventStatus.APPROVED: frozenset(),
    EventStatus.REJECTED: frozenset(),
}


def ensure_transition(current: EventStatus, target: EventStatus) -> EventStatus:
    if target not in _ALLOWED.get(current, frozenset()):
        raise InvalidTransition(current.value, target.value)
    return target


def apply_decision(event: Event, decision: Any) -> Event:
    """Return a new snapshot of `event` in its terminal status."""
    target = ensure_transition(event.status, Decision.parse(decision).target_status)
    return replace(event, status=target)
