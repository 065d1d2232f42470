"""
MORIS Events — Event Type Catalogue
=====================================
The closed set of project event types.

Each value is simultaneously:
- the discriminator for the payload shape
- the capability token checked before a user may originate it
- the string a policy lists in its event_types

Wire values follow the server's project.<action> naming.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


# ══════════════════════════════════════════════════════════════
# EVENT TYPE
# ══════════════════════════════════════════════════════════════

class EventType(str, Enum):
    """Closed enumeration of project event types."""

    TITLE_CHANGED = "project.title_changed"
    DESCRIPTION_CHANGED = "project.description_changed"
    START_DATE_CHANGED = "project.start_date_changed"
    END_DATE_CHANGED = "project.end_date_changed"
    OWNING_ORG_NODE_CHANGED = "project.owning_org_node_changed"
    CUSTOM_FIELD_VALUE_SET = "project.custom_field_value_set"
    PRODUCT_ADDED = "project.product_added"
    PRODUCT_REMOVED = "project.product_removed"
    PROJECT_ROLE_ASSIGNED = "project.project_role_assigned"
    PROJECT_ROLE_UNASSIGNED = "project.role_unassigned"
    AFFILIATED_ORGANISATION_ADDED = "project.affiliated_organisation_added"
    AFFILIATED_ORGANISATION_REMOVED = "project.affiliated_organisation_removed"
    EVENT_POLICY_ADDED = "project.event_policy_added"
    EVENT_POLICY_REMOVED = "project.event_policy_removed"
    EVENT_POLICY_UPDATED = "project.event_policy_updated"
    RAID_LINKED = "project.raid_linked"
    RAID_UPDATED = "project.raid_updated"

    def __str__(self) -> str:
        return self.value


_FRIENDLY_NAMES: Dict[EventType, str] = {
    EventType.TITLE_CHANGED: "Title Change",
    EventType.DESCRIPTION_CHANGED: "Description Change",
    EventType.START_DATE_CHANGED: "Start Date Change",
    EventType.END_DATE_CHANGED: "End Date Change",
    EventType.OWNING_ORG_NODE_CHANGED: "Owning Organisation Node Change",
    EventType.CUSTOM_FIELD_VALUE_SET: "Set Custom Field Value",
    EventType.PRODUCT_ADDED: "Product Addition",
    EventType.PRODUCT_REMOVED: "Product Removal",
    EventType.PROJECT_ROLE_ASSIGNED: "Project Role Assignment",
    EventType.PROJECT_ROLE_UNASSIGNED: "Project Role Unassignment",
    EventType.AFFILIATED_ORGANISATION_ADDED: "Affiliated Organisation Addition",
    EventType.AFFILIATED_ORGANISATION_REMOVED: "Affiliated Organisation Removal",
    EventType.EVENT_POLICY_ADDED: "Event Policy Added",
    EventType.EVENT_POLICY_REMOVED: "Event Policy Removed",
    EventType.EVENT_POLICY_UPDATED: "Event Policy Updated",
    EventType.RAID_LINKED: "RAiD Link",
    EventType.RAID_UPDATED: "RAiD Update",
}


def parse_event_type(value: Any) -> Optional[EventType]:
    """
    Map a raw type string onto the enumeration.

    Returns None for anything outside the closed set. Never raises:
    readers must tolerate event types newer than this client.
    """
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        return None


def friendly_name(event_type: Any) -> str:
    """Human-readable label; falls back to the raw type string."""
    parsed = parse_event_type(event_type)
    if parsed is None:
        return str(event_type)
    return _FRIENDLY_NAMES.get(parsed, parsed.value)


# ══════════════════════════════════════════════════════════════
# EVENT STATUS
# ══════════════════════════════════════════════════════════════

class EventStatus(str, Enum):
    """
    Lifecycle status of an event.

    PENDING → APPROVED (folded into canonical state server-side)
    PENDING → REJECTED (discarded)
    Both terminal states are final.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not EventStatus.PENDING

    def __str__(self) -> str:
        return self.value
