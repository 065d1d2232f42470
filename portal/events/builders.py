"""
MORIS Events — Request Builders
=================================
One total, side-effect-free constructor per event type.

Every builder validates through the payload dataclass and returns an
EventRequest. Nothing here touches local state or the network; the
request is only a value handed to the backend's submit_event.

Invalid input raises InvalidEventPayload here, never at the server.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from portal.events.errors import InvalidEventPayload, UnknownEventType
from portal.events.models import EventRequest
from portal.events.payloads import (
    PAYLOAD_TYPES,
    AffiliatedOrganisationAdded,
    AffiliatedOrganisationRemoved,
    CustomFieldValueSet,
    DateLike,
    DescriptionChanged,
    EndDateChanged,
    EventPolicyAdded,
    EventPolicyRemoved,
    EventPolicyUpdated,
    OwningOrgNodeChanged,
    ProductAdded,
    ProductRemoved,
    ProjectRoleAssigned,
    ProjectRoleUnassigned,
    RaidLinked,
    RaidUpdated,
    StartDateChanged,
    TitleChanged,
)
from portal.events.types import parse_event_type


def _request(project_id: str, payload: Any) -> EventRequest:
    if not isinstance(project_id, str) or not project_id:
        raise InvalidEventPayload(
            payload.event_type.value, "project_id must be a non-empty string."
        )
    return EventRequest(
        project_id=project_id,
        event_type=payload.event_type,
        data=payload.to_data(),
    )


# ══════════════════════════════════════════════════════════════
# SCALAR FIELDS
# ══════════════════════════════════════════════════════════════

def title_changed(project_id: str, title: str) -> EventRequest:
    return _request(project_id, TitleChanged(title=title))


def description_changed(project_id: str, description: str) -> EventRequest:
    return _request(project_id, DescriptionChanged(description=description))


def start_date_changed(project_id: str, start_date: DateLike) -> EventRequest:
    return _request(project_id, StartDateChanged(start_date=start_date))


def end_date_changed(project_id: str, end_date: DateLike) -> EventRequest:
    return _request(project_id, EndDateChanged(end_date=end_date))


def owning_org_node_changed(project_id: str, owning_org_node_id: str) -> EventRequest:
    return _request(
        project_id, OwningOrgNodeChanged(owning_org_node_id=owning_org_node_id)
    )


def custom_field_value_set(
    project_id: str,
    definition_id: str,
    value: Any,
) -> EventRequest:
    """
    Custom field values travel as text.

    Dates become ISO-8601, booleans "true"/"false", None the empty string.
    """
    if value is None:
        text = ""
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (date, datetime)):
        text = value.isoformat()
    else:
        text = str(value)
    return _request(
        project_id, CustomFieldValueSet(definition_id=definition_id, value=text)
    )


# ══════════════════════════════════════════════════════════════
# COLLECTIONS
# ══════════════════════════════════════════════════════════════

def product_added(project_id: str, product_id: str) -> EventRequest:
    return _request(project_id, ProductAdded(product_id=product_id))


def product_removed(project_id: str, product_id: str) -> EventRequest:
    return _request(project_id, ProductRemoved(product_id=product_id))


def project_role_assigned(
    project_id: str, person_id: str, project_role_id: str
) -> EventRequest:
    return _request(
        project_id,
        ProjectRoleAssigned(person_id=person_id, project_role_id=project_role_id),
    )


def project_role_unassigned(
    project_id: str, person_id: str, project_role_id: str
) -> EventRequest:
    return _request(
        project_id,
        ProjectRoleUnassigned(person_id=person_id, project_role_id=project_role_id),
    )


def affiliated_organisation_added(
    project_id: str, affiliated_organisation_id: str
) -> EventRequest:
    return _request(
        project_id,
        AffiliatedOrganisationAdded(
            affiliated_organisation_id=affiliated_organisation_id
        ),
    )


def affiliated_organisation_removed(
    project_id: str, affiliated_organisation_id: str
) -> EventRequest:
    return _request(
        project_id,
        AffiliatedOrganisationRemoved(
            affiliated_organisation_id=affiliated_organisation_id
        ),
    )


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

def event_policy_added(
    project_id: str,
    name: str,
    event_types: Iterable[Any],
    action_type: Any,
    recipient_user_ids: Iterable[str] = (),
    recipient_project_role_ids: Iterable[str] = (),
    recipient_org_role_ids: Iterable[str] = (),
    recipient_dynamic: Iterable[str] = (),
    enabled: bool = True,
    description: Optional[str] = None,
) -> EventRequest:
    return _request(
        project_id,
        EventPolicyAdded(
            name=name,
            event_types=tuple(event_types),
            action_type=action_type,
            recipient_user_ids=tuple(recipient_user_ids),
            recipient_project_role_ids=tuple(recipient_project_role_ids),
            recipient_org_role_ids=tuple(recipient_org_role_ids),
            recipient_dynamic=tuple(recipient_dynamic),
            enabled=enabled,
            description=description,
        ),
    )


def event_policy_updated(
    project_id: str,
    policy_id: str,
    name: str,
    event_types: Iterable[Any],
    action_type: Any,
    recipient_user_ids: Iterable[str] = (),
    recipient_project_role_ids: Iterable[str] = (),
    recipient_org_role_ids: Iterable[str] = (),
    recipient_dynamic: Iterable[str] = (),
    enabled: bool = True,
    description: Optional[str] = None,
) -> EventRequest:
    return _request(
        project_id,
        EventPolicyUpdated(
            policy_id=policy_id,
            name=name,
            event_types=tuple(event_types),
            action_type=action_type,
            recipient_user_ids=tuple(recipient_user_ids),
            recipient_project_role_ids=tuple(recipient_project_role_ids),
            recipient_org_role_ids=tuple(recipient_org_role_ids),
            recipient_dynamic=tuple(recipient_dynamic),
            enabled=enabled,
            description=description,
        ),
    )


def event_policy_removed(project_id: str, policy_id: str) -> EventRequest:
    return _request(project_id, EventPolicyRemoved(policy_id=policy_id))


# ══════════════════════════════════════════════════════════════
# RAID
# ══════════════════════════════════════════════════════════════

def raid_linked(project_id: str, raid_id: str) -> EventRequest:
    return _request(project_id, RaidLinked(raid_id=raid_id))


def raid_updated(
    project_id: str, raid_id: str, changes: Optional[Dict[str, Any]] = None
) -> EventRequest:
    return _request(project_id, RaidUpdated(raid_id=raid_id, changes=dict(changes or {})))


# ══════════════════════════════════════════════════════════════
# GENERIC
# ══════════════════════════════════════════════════════════════

def build_event_request(project_id: str, event_type: Any, **fields: Any) -> EventRequest:
    """
    Build a request for any type by dispatching on PAYLOAD_TYPES.

    Raises:
        UnknownEventType:    type outside the closed enumeration
        InvalidEventPayload: fields do not fit the payload shape
    """
    parsed = parse_event_type(event_type)
    if parsed is None:
        raise UnknownEventType(str(event_type))

    payload_cls = PAYLOAD_TYPES[parsed]
    try:
        payload = payload_cls(**fields)
    except TypeError as exc:
        raise InvalidEventPayload(parsed.value, str(exc)) from exc
    return _request(project_id, payload)
