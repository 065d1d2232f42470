"""
MORIS Events — Payload Shapes
===============================
One frozen dataclass per event type. The payload shape is fully
determined by the type; PAYLOAD_TYPES is the exhaustive mapping.

Validation happens in __post_init__ so an invalid payload can never
exist, let alone reach the server.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from portal.events.errors import InvalidEventPayload
from portal.events.types import EventType, parse_event_type


DateLike = Union[date, datetime, str]

VALID_POLICY_ACTIONS = frozenset({"notify", "request_approval"})
VALID_DYNAMIC_RECIPIENTS = frozenset({"project_members", "project_owner", "org_admins"})


# ══════════════════════════════════════════════════════════════
# FIELD HELPERS
# ══════════════════════════════════════════════════════════════

def _require_text(event_type: EventType, name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidEventPayload(event_type.value, f"{name} must be a non-empty string.")
    return value


def _require_str(event_type: EventType, name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidEventPayload(event_type.value, f"{name} must be a string.")
    return value


def _normalize_date(event_type: EventType, name: str, value: Any) -> str:
    """Accept date, datetime or ISO-8601 text; store ISO-8601 text."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if "T" in text:
                datetime.fromisoformat(text.replace("Z", "+00:00"))
            else:
                date.fromisoformat(text)
        except ValueError as exc:
            raise InvalidEventPayload(
                event_type.value, f"{name} '{value}' is not an ISO-8601 date."
            ) from exc
        return text
    raise InvalidEventPayload(event_type.value, f"{name} must be a date or ISO-8601 string.")


def _id_tuple(event_type: EventType, name: str, values: Any) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str) or not hasattr(values, "__iter__"):
        raise InvalidEventPayload(event_type.value, f"{name} must be a sequence of ids.")
    out = []
    for value in values:
        out.append(_require_text(event_type, name, str(value) if value is not None else value))
    return tuple(out)


class _Payload:
    """Shared serialisation for payload dataclasses."""

    event_type: ClassVar[EventType]

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data


# ══════════════════════════════════════════════════════════════
# SCALAR PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TitleChanged(_Payload):
    event_type: ClassVar[EventType] = EventType.TITLE_CHANGED
    title: str

    def __post_init__(self):
        _require_text(self.event_type, "title", self.title)


@dataclass(frozen=True)
class DescriptionChanged(_Payload):
    event_type: ClassVar[EventType] = EventType.DESCRIPTION_CHANGED
    description: str

    def __post_init__(self):
        _require_str(self.event_type, "description", self.description)


@dataclass(frozen=True)
class StartDateChanged(_Payload):
    event_type: ClassVar[EventType] = EventType.START_DATE_CHANGED
    start_date: DateLike

    def __post_init__(self):
        object.__setattr__(
            self, "start_date",
            _normalize_date(self.event_type, "start_date", self.start_date),
        )


@dataclass(frozen=True)
class EndDateChanged(_Payload):
    event_type: ClassVar[EventType] = EventType.END_DATE_CHANGED
    end_date: DateLike

    def __post_init__(self):
        object.__setattr__(
            self, "end_date",
            _normalize_date(self.event_type, "end_date", self.end_date),
        )


@dataclass(frozen=True)
class OwningOrgNodeChanged(_Payload):
    event_type: ClassVar[EventType] = EventType.OWNING_ORG_NODE_CHANGED
    owning_org_node_id: str

    def __post_init__(self):
        _require_text(self.event_type, "owning_org_node_id", self.owning_org_node_id)


@dataclass(frozen=True)
class CustomFieldValueSet(_Payload):
    event_type: ClassVar[EventType] = EventType.CUSTOM_FIELD_VALUE_SET
    definition_id: str
    value: str

    def __post_init__(self):
        _require_text(self.event_type, "definition_id", self.definition_id)
        _require_str(self.event_type, "value", self.value)


# ══════════════════════════════════════════════════════════════
# COLLECTION PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProductAdded(_Payload):
    event_type: ClassVar[EventType] = EventType.PRODUCT_ADDED
    product_id: str

    def __post_init__(self):
        _require_text(self.event_type, "product_id", self.product_id)


@dataclass(frozen=True)
class ProductRemoved(_Payload):
    event_type: ClassVar[EventType] = EventType.PRODUCT_REMOVED
    product_id: str

    def __post_init__(self):
        _require_text(self.event_type, "product_id", self.product_id)


@dataclass(frozen=True)
class ProjectRoleAssigned(_Payload):
    event_type: ClassVar[EventType] = EventType.PROJECT_ROLE_ASSIGNED
    person_id: str
    project_role_id: str

    def __post_init__(self):
        _require_text(self.event_type, "person_id", self.person_id)
        _require_text(self.event_type, "project_role_id", self.project_role_id)


@dataclass(frozen=True)
class ProjectRoleUnassigned(_Payload):
    event_type: ClassVar[EventType] = EventType.PROJECT_ROLE_UNASSIGNED
    person_id: str
    project_role_id: str

    def __post_init__(self):
        _require_text(self.event_type, "person_id", self.person_id)
        _require_text(self.event_type, "project_role_id", self.project_role_id)


@dataclass(frozen=True)
class AffiliatedOrganisationAdded(_Payload):
    event_type: ClassVar[EventType] = EventType.AFFILIATED_ORGANISATION_ADDED
    affiliated_organisation_id: str

    def __post_init__(self):
        _require_text(
            self.event_type, "affiliated_organisation_id",
            self.affiliated_organisation_id,
        )


@dataclass(frozen=True)
class AffiliatedOrganisationRemoved(_Payload):
    event_type: ClassVar[EventType] = EventType.AFFILIATED_ORGANISATION_REMOVED
    affiliated_organisation_id: str

    def __post_init__(self):
        _require_text(
            self.event_type, "affiliated_organisation_id",
            self.affiliated_organisation_id,
        )


# ══════════════════════════════════════════════════════════════
# POLICY PAYLOADS
# ══════════════════════════════════════════════════════════════

def _validate_policy_fields(payload: Any) -> None:
    event_type = payload.event_type
    _require_text(event_type, "name", payload.name)

    if not payload.event_types:
        raise InvalidEventPayload(event_type.value, "event_types must not be empty.")
    normalized = []
    for raw in payload.event_types:
        parsed = parse_event_type(raw)
        if parsed is None:
            raise InvalidEventPayload(
                event_type.value, f"event_types contains unknown type '{raw}'."
            )
        normalized.append(parsed.value)
    object.__setattr__(payload, "event_types", tuple(normalized))

    action = getattr(payload.action_type, "value", payload.action_type)
    if action not in VALID_POLICY_ACTIONS:
        raise InvalidEventPayload(
            event_type.value,
            f"action_type '{action}' must be one of {sorted(VALID_POLICY_ACTIONS)}.",
        )
    object.__setattr__(payload, "action_type", action)

    for name in (
        "recipient_user_ids",
        "recipient_project_role_ids",
        "recipient_org_role_ids",
    ):
        object.__setattr__(
            payload, name, _id_tuple(event_type, name, getattr(payload, name))
        )

    dynamic = _id_tuple(event_type, "recipient_dynamic", payload.recipient_dynamic)
    for kind in dynamic:
        if kind not in VALID_DYNAMIC_RECIPIENTS:
            raise InvalidEventPayload(
                event_type.value, f"recipient_dynamic '{kind}' is not supported."
            )
    object.__setattr__(payload, "recipient_dynamic", dynamic)

    if not isinstance(payload.enabled, bool):
        raise InvalidEventPayload(event_type.value, "enabled must be a bool.")
    if payload.description is not None:
        _require_str(event_type, "description", payload.description)


@dataclass(frozen=True)
class EventPolicyAdded(_Payload):
    event_type: ClassVar[EventType] = EventType.EVENT_POLICY_ADDED
    name: str
    event_types: Tuple[str, ...]
    action_type: str
    recipient_user_ids: Tuple[str, ...] = ()
    recipient_project_role_ids: Tuple[str, ...] = ()
    recipient_org_role_ids: Tuple[str, ...] = ()
    recipient_dynamic: Tuple[str, ...] = ()
    enabled: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        _validate_policy_fields(self)


@dataclass(frozen=True)
class EventPolicyUpdated(_Payload):
    event_type: ClassVar[EventType] = EventType.EVENT_POLICY_UPDATED
    policy_id: str
    name: str
    event_types: Tuple[str, ...]
    action_type: str
    recipient_user_ids: Tuple[str, ...] = ()
    recipient_project_role_ids: Tuple[str, ...] = ()
    recipient_org_role_ids: Tuple[str, ...] = ()
    recipient_dynamic: Tuple[str, ...] = ()
    enabled: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        _require_text(self.event_type, "policy_id", self.policy_id)
        _validate_policy_fields(self)


@dataclass(frozen=True)
class EventPolicyRemoved(_Payload):
    event_type: ClassVar[EventType] = EventType.EVENT_POLICY_REMOVED
    policy_id: str

    def __post_init__(self):
        _require_text(self.event_type, "policy_id", self.policy_id)


# ══════════════════════════════════════════════════════════════
# RAID PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RaidLinked(_Payload):
    event_type: ClassVar[EventType] = EventType.RAID_LINKED
    raid_id: str

    def __post_init__(self):
        _require_text(self.event_type, "raid_id", self.raid_id)


@dataclass(frozen=True)
class RaidUpdated(_Payload):
    event_type: ClassVar[EventType] = EventType.RAID_UPDATED
    raid_id: str
    changes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _require_text(self.event_type, "raid_id", self.raid_id)
        if not isinstance(self.changes, dict):
            raise InvalidEventPayload(self.event_type.value, "changes must be a dict.")

    def to_data(self) -> Dict[str, Any]:
        return {"raid_id": self.raid_id, "changes": dict(self.changes)}


# ══════════════════════════════════════════════════════════════
# EXHAUSTIVE MAPPING
# ══════════════════════════════════════════════════════════════

PAYLOAD_TYPES: Dict[EventType, type] = {
    cls.event_type: cls
    for cls in (
        TitleChanged,
        DescriptionChanged,
        StartDateChanged,
        EndDateChanged,
        OwningOrgNodeChanged,
        CustomFieldValueSet,
        ProductAdded,
        ProductRemoved,
        ProjectRoleAssigned,
        ProjectRoleUnassigned,
        AffiliatedOrganisationAdded,
        AffiliatedOrganisationRemoved,
        EventPolicyAdded,
        EventPolicyUpdated,
        EventPolicyRemoved,
        RaidLinked,
        RaidUpdated,
    )
}


def verify_catalogue() -> None:
    """Every EventType must have exactly one payload shape."""
    missing = [t.value for t in EventType if t not in PAYLOAD_TYPES]
    if missing:
        raise RuntimeError(f"Event types without payload shape: {sorted(missing)}")


verify_catalogue()
