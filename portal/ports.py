"""
MORIS Portal — Collaborator Ports
===================================
The server is the source of truth for validation, persistence, policy
evaluation and final approve / reject decisions. The engine sees it only
through this protocol. Transport (HTTP, schema) is not its concern.

Implementations raise portal.errors:
    TransportError   request did not complete (retryable)
    ConflictError    resolve on an event that is no longer pending
    NotFoundError    unknown project, event or notification
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Protocol

from portal.events.models import Event, EventRequest
from portal.policy.models import EventPolicy


# ══════════════════════════════════════════════════════════════
# NOTIFICATION
# ══════════════════════════════════════════════════════════════

class NotificationType:
    INFO = "info"
    APPROVAL_REQUEST = "approval_request"
    STATUS_UPDATE = "status_update"

    ALL = frozenset({"info", "approval_request", "status_update"})


@dataclass(frozen=True)
class Notification:
    notification_id: str
    user_id: str
    message: str
    type: str = NotificationType.INFO
    event_id: Optional[str] = None
    project_id: Optional[str] = None
    read: bool = False
    sent_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.notification_id:
            raise ValueError("notification_id must be non-empty.")
        if not self.user_id:
            raise ValueError("user_id must be non-empty.")
        if self.type not in NotificationType.ALL:
            raise ValueError(
                f"type '{self.type}' not valid. "
                f"Must be one of: {sorted(NotificationType.ALL)}"
            )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Notification":
        sent_at = raw.get("sent_at") or raw.get("sentAt")
        if isinstance(sent_at, str):
            sent_at = datetime.fromisoformat(sent_at.replace("Z", "+00:00"))
        return cls(
            notification_id=str(raw.get("id") or raw.get("notification_id") or ""),
            user_id=str(raw.get("user_id") or raw.get("userId") or ""),
            message=str(raw.get("message") or ""),
            type=raw.get("type") or NotificationType.INFO,
            event_id=raw.get("event_id") or raw.get("eventId"),
            project_id=raw.get("project_id") or raw.get("projectId"),
            read=bool(raw.get("read", False)),
            sent_at=sent_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "message": self.message,
            "type": self.type,
            "event_id": self.event_id,
            "project_id": self.project_id,
            "read": self.read,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }


# ══════════════════════════════════════════════════════════════
# BACKEND PROTOCOL
# ══════════════════════════════════════════════════════════════

class PortalBackend(Protocol):
    """Reads and writes the engine performs against the server."""

    async def get_canonical_project(self, project_id: str) -> Dict[str, Any]:
        """Last server-confirmed project state."""
        ...  # pragma: no cover

    async def get_pending_events(self, project_id: str) -> List[Event]:
        """Pending events only, in causal (insertion) order."""
        ...  # pragma: no cover

    async def get_allowed_event_types(
        self, user_id: str, project_id: str
    ) -> FrozenSet[str]:
        ...  # pragma: no cover

    async def get_policies(
        self, project_id: str, include_inherited: bool = True
    ) -> List[EventPolicy]:
        ...  # pragma: no cover

    async def submit_event(self, request: EventRequest, actor_id: str) -> Event:
        """Server decides pending vs auto-applied."""
        ...  # pragma: no cover

    async def resolve_event(self, event_id: str, decision: str) -> None:
        ...  # pragma: no cover

    async def get_notifications(self, user_id: str) -> List[Notification]:
        ...  # pragma: no cover

    async def mark_notification_read(self, notification_id: str) -> None:
        ...  # pragma: no cover
