"""
MORIS Events — Event and EventRequest
=======================================
Event is what the server returns: an identified, timestamped mutation
with a lifecycle status. EventRequest is what the client sends: a
validated, submit-ready (project_id, type, data) triple.

Reading is lenient. Event.from_dict keeps unrecognised types verbatim
so newer servers never break older clients. Constructing is strict:
EventRequest only comes out of the builders.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from portal.events.types import EventStatus, EventType, parse_event_type


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _parse_status(value: Any) -> EventStatus:
    if isinstance(value, EventStatus):
        return value
    try:
        return EventStatus(str(value).lower())
    except ValueError:
        # Unknown lifecycle states are treated as resolved; they never
        # appear in the pending set.
        return EventStatus.REJECTED


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


# ══════════════════════════════════════════════════════════════
# EVENT (server-assigned)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Event:
    """
    One proposed or applied project mutation.

    `type` is the raw wire string. Use `event_type` for the parsed
    enumeration member (None for types newer than this client).

    `product`, `person` and `project_role` are server-hydrated
    snapshots of the referenced entities, used for display and for
    projecting collection inserts.
    """

    event_id: str
    project_id: str
    type: str
    status: EventStatus = EventStatus.PENDING
    data: Dict[str, Any] = field(default_factory=dict)
    at: Optional[datetime] = None
    actor: Optional[str] = None
    product: Optional[Dict[str, Any]] = None
    person: Optional[Dict[str, Any]] = None
    project_role: Optional[Dict[str, Any]] = None
    details: Optional[str] = None

    def __post_init__(self):
        if not self.event_id:
            raise ValueError("event_id must be non-empty.")
        if not self.project_id:
            raise ValueError("project_id must be non-empty.")
        if isinstance(self.type, EventType):
            object.__setattr__(self, "type", self.type.value)
        elif not isinstance(self.type, str):
            object.__setattr__(self, "type", str(self.type))
        if not isinstance(self.status, EventStatus):
            object.__setattr__(self, "status", _parse_status(self.status))
        if self.data is None:
            object.__setattr__(self, "data", {})

    @property
    def event_type(self) -> Optional[EventType]:
        return parse_event_type(self.type)

    @property
    def is_pending(self) -> bool:
        return self.status is EventStatus.PENDING

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Event":
        """Parse the wire shape. Accepts camelCase and snake_case keys."""
        data = raw.get("data")
        return cls(
            event_id=_text(_first(raw, "id", "event_id")),
            project_id=_text(_first(raw, "projectId", "project_id")),
            type=str(raw.get("type", "")),
            status=_parse_status(raw.get("status", EventStatus.PENDING.value)),
            data=dict(data) if isinstance(data, Mapping) else {},
            at=_parse_timestamp(_first(raw, "at", "createdAt", "created_at")),
            actor=_first(raw, "createdBy", "created_by", "actor"),
            product=_copy_snapshot(raw.get("product")),
            person=_copy_snapshot(raw.get("person")),
            project_role=_copy_snapshot(_first(raw, "projectRole", "project_role")),
            details=raw.get("details"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.event_id,
            "project_id": self.project_id,
            "type": self.type,
            "status": self.status.value,
            "data": copy.deepcopy(self.data),
            "at": self.at.isoformat() if self.at else None,
            "actor": self.actor,
        }
        if self.product is not None:
            out["product"] = copy.deepcopy(self.product)
        if self.person is not None:
            out["person"] = copy.deepcopy(self.person)
        if self.project_role is not None:
            out["project_role"] = copy.deepcopy(self.project_role)
        if self.details is not None:
            out["details"] = self.details
        return out


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _copy_snapshot(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    return None


# ══════════════════════════════════════════════════════════════
# EVENT REQUEST (client-built, submit-ready)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EventRequest:
    """
    A validated mutation ready for submission.

    Produced only by portal.events.builders. Holds no identity: the
    server assigns id, status and timestamp.
    """

    project_id: str
    event_type: EventType
    data: Dict[str, Any]

    def __post_init__(self):
        if not self.project_id or not isinstance(self.project_id, str):
            raise ValueError("project_id must be a non-empty string.")
        if not isinstance(self.event_type, EventType):
            raise TypeError("event_type must be an EventType.")
        if not isinstance(self.data, dict):
            raise TypeError("data must be a dict.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "type": self.event_type.value,
            "data": copy.deepcopy(self.data),
        }
