"""
MORIS Projections — Project Reducers
======================================
One merge rule per event type, applied to a working copy of the
project. HANDLERS is exhaustive over EventType; verify_handlers()
runs at import so a new type without a rule fails loudly.

Handlers mutate the working copy they are given and nothing else.
A handler that cannot apply its event raises SkipEvent; the engine
logs it and moves on.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Mapping

from portal.events.models import Event
from portal.events.types import EventType

PENDING_MEMBER_PREFIX = "pending"

Handler = Callable[[Dict[str, Any], Event, bool], None]


class SkipEvent(Exception):
    """The event has no effect on this projection."""

    def __init__(self, event: Event, reason: str):
        self.event_id = event.event_id
        self.event_type = event.type
        self.reason = reason
        super().__init__(f"{event.type} ({event.event_id}) skipped: {reason}")


def _data(event: Event, key: str) -> Any:
    return (event.data or {}).get(key)


def _list(state: Dict[str, Any], key: str) -> List[Any]:
    value = state.get(key)
    if not isinstance(value, list):
        value = []
        state[key] = value
    return value


# ══════════════════════════════════════════════════════════════
# SCALAR REPLACE
# ══════════════════════════════════════════════════════════════

def _scalar(field_name: str) -> Handler:
    def handler(state: Dict[str, Any], event: Event, speculative: bool) -> None:
        value = _data(event, field_name)
        # Only explicit values override; absence never clears.
        if not value:
            raise SkipEvent(event, f"no {field_name} in payload")
        state[field_name] = value

    handler.__qualname__ = f"replace_{field_name}"
    return handler


def _owning_org_node(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    node_id = _data(event, "owning_org_node_id")
    if not node_id:
        raise SkipEvent(event, "no owning_org_node_id in payload")
    current = state.get("owning_org_node")
    node = dict(current) if isinstance(current, Mapping) else {}
    # Cached display fields stay until the canonical refetch.
    node["id"] = node_id
    state["owning_org_node"] = node


# ══════════════════════════════════════════════════════════════
# MAP UPSERT
# ══════════════════════════════════════════════════════════════

def _definition_ids(definitions: Any) -> set:
    if isinstance(definitions, Mapping):
        return {str(k) for k in definitions}
    ids = set()
    for item in definitions or ():
        if isinstance(item, Mapping) and item.get("id") is not None:
            ids.add(str(item["id"]))
        elif isinstance(item, str):
            ids.add(item)
    return ids


def _custom_field_value(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    definition_id = _data(event, "definition_id")
    if not definition_id:
        raise SkipEvent(event, "no definition_id in payload")

    definitions = state.get("custom_field_definitions")
    if definitions is not None and str(definition_id) not in _definition_ids(definitions):
        raise SkipEvent(event, f"custom field definition {definition_id} no longer exists")

    custom_fields = state.get("custom_fields")
    if not isinstance(custom_fields, dict):
        custom_fields = {}
        state["custom_fields"] = custom_fields
    custom_fields[definition_id] = _data(event, "value")


# ══════════════════════════════════════════════════════════════
# PRODUCTS
# ══════════════════════════════════════════════════════════════

def _product_snapshot(event: Event) -> Dict[str, Any]:
    if isinstance(event.product, Mapping) and event.product.get("id"):
        return copy.deepcopy(dict(event.product))
    if _data(event, "id"):
        return copy.deepcopy(dict(event.data))
    if _data(event, "product_id"):
        return {"id": _data(event, "product_id")}
    raise SkipEvent(event, "no product snapshot or product_id")


def _product_added(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    product = _product_snapshot(event)
    products = _list(state, "products")
    if any(isinstance(p, Mapping) and p.get("id") == product["id"] for p in products):
        raise SkipEvent(event, f"product {product['id']} already present")
    if speculative:
        product["pending"] = True
    else:
        product.pop("pending", None)
    products.append(product)


def _product_removed(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    product_id = _data(event, "product_id")
    if not product_id:
        raise SkipEvent(event, "no product_id in payload")
    state["products"] = [
        p for p in _list(state, "products")
        if not (isinstance(p, Mapping) and p.get("id") == product_id)
    ]


# ══════════════════════════════════════════════════════════════
# MEMBERS
# ══════════════════════════════════════════════════════════════

def _pick(snapshot: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if snapshot.get(key) is not None:
            return snapshot[key]
    return None


def _member_name(person: Mapping[str, Any]) -> str:
    given = _pick(person, "givenName", "given_name") or ""
    family = _pick(person, "familyName", "family_name") or ""
    name = f"{given} {family}".strip()
    return name or (person.get("name") or "")


def _role_assigned(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    person = event.person if isinstance(event.person, Mapping) else {}
    role = event.project_role if isinstance(event.project_role, Mapping) else {}
    person_id = person.get("id") or _data(event, "person_id")
    role_id = role.get("id") or _data(event, "project_role_id")
    if not person_id or not role_id:
        raise SkipEvent(event, "no person or project role to assign")

    member = {
        "id": f"{PENDING_MEMBER_PREFIX}-{person_id}-{role_id}" if speculative
        else f"{person_id}-{role_id}",
        "user_id": person_id,
        "name": _member_name(person),
        "email": person.get("email"),
        "avatar_url": _pick(person, "avatarUrl", "avatar_url"),
        "role": role.get("slug"),
        "role_id": role_id,
        "role_name": role.get("name"),
    }
    if speculative:
        member["pending"] = True
    _list(state, "members").append(member)


def _role_unassigned(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    person_id = _data(event, "person_id")
    role_id = _data(event, "project_role_id")
    if not person_id or not role_id:
        raise SkipEvent(event, "person_id and project_role_id are both required")
    state["members"] = [
        m for m in _list(state, "members")
        if not (
            isinstance(m, Mapping)
            and m.get("user_id") == person_id
            and m.get("role_id") == role_id
        )
    ]


# ══════════════════════════════════════════════════════════════
# AFFILIATED ORGANISATIONS
# ══════════════════════════════════════════════════════════════

def _affiliation_added(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    org_id = _data(event, "affiliated_organisation_id")
    if not org_id:
        raise SkipEvent(event, "no affiliated_organisation_id in payload")
    ids = _list(state, "affiliated_organisation_ids")
    if org_id not in ids:
        ids.append(org_id)


def _affiliation_removed(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    org_id = _data(event, "affiliated_organisation_id")
    if not org_id:
        raise SkipEvent(event, "no affiliated_organisation_id in payload")
    state["affiliated_organisation_ids"] = [
        i for i in _list(state, "affiliated_organisation_ids") if i != org_id
    ]


# ══════════════════════════════════════════════════════════════
# NO-OPS
# ══════════════════════════════════════════════════════════════

def _no_effect(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    """Policy and RAiD events do not change the project entity."""
    return None


# ══════════════════════════════════════════════════════════════
# HANDLER TABLE
# ══════════════════════════════════════════════════════════════

HANDLERS: Dict[EventType, Handler] = {
    EventType.TITLE_CHANGED: _scalar("title"),
    EventType.DESCRIPTION_CHANGED: _scalar("description"),
    EventType.START_DATE_CHANGED: _scalar("start_date"),
    EventType.END_DATE_CHANGED: _scalar("end_date"),
    EventType.OWNING_ORG_NODE_CHANGED: _owning_org_node,
    EventType.CUSTOM_FIELD_VALUE_SET: _custom_field_value,
    EventType.PRODUCT_ADDED: _product_added,
    EventType.PRODUCT_REMOVED: _product_removed,
    EventType.PROJECT_ROLE_ASSIGNED: _role_assigned,
    EventType.PROJECT_ROLE_UNASSIGNED: _role_unassigned,
    EventType.AFFILIATED_ORGANISATION_ADDED: _affiliation_added,
    EventType.AFFILIATED_ORGANISATION_REMOVED: _affiliation_removed,
    EventType.EVENT_POLICY_ADDED: _no_effect,
    EventType.EVENT_POLICY_REMOVED: _no_effect,
    EventType.EVENT_POLICY_UPDATED: _no_effect,
    EventType.RAID_LINKED: _no_effect,
    EventType.RAID_UPDATED: _no_effect,
}


def verify_handlers() -> None:
    missing = [t.value for t in EventType if t not in HANDLERS]
    if missing:
        raise RuntimeError(f"Event types without projection rule: {sorted(missing)}")


verify_handlers()
