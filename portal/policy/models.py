"""
MORIS Policy — Models
=======================
A policy maps a set of event types to an action and a recipient set.

    NOTIFY            event applies immediately, recipients are informed
    REQUEST_APPROVAL  event parks as pending until an approver resolves it

Policies reach a project from two scopes: PROJECT (defined on the
project itself) and ORGANISATION (inherited from the owning org node or
one of its ancestors). Inherited policies are read-only from the project.

These are pure data structures. Matching lives in resolution.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class ActionType(str, Enum):
    NOTIFY = "notify"
    APPROVE = "request_approval"

    @classmethod
    def parse(cls, value: Any) -> "ActionType":
        if isinstance(value, ActionType):
            return value
        text = str(value).strip().lower()
        if text == "approve":
            return cls.APPROVE
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"action_type '{value}' not valid. "
                f"Must be one of: {[a.value for a in cls]}"
            ) from None

    def __str__(self) -> str:
        return self.value


class PolicyScope(str, Enum):
    PROJECT = "project"
    ORGANISATION = "organisation"


class DynamicRecipient:
    """Recipient kinds resolved at evaluation time."""
    PROJECT_MEMBERS = "project_members"
    PROJECT_OWNER = "project_owner"
    ORG_ADMINS = "org_admins"

    ALL = frozenset({"project_members", "project_owner", "org_admins"})


class ConditionOperator:
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"

    ALL = frozenset({
        "equals", "not_equals", "contains", "starts_with",
        "greater_than", "less_than", "in", "not_in",
        "exists", "not_exists",
    })


def _ids(values: Any) -> Tuple[str, ...]:
    if not values:
        return ()
    return tuple(str(v) for v in values if v is not None and str(v))


# ══════════════════════════════════════════════════════════════
# RECIPIENTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Recipients:
    """
    Who a policy addresses.

    users:         explicit person ids
    project_roles: project role ids, resolved to the holders on the project
    org_roles:     organisation role ids, resolved on the owning org node
    dynamic:       project_members | project_owner | org_admins
    """

    users: Tuple[str, ...] = ()
    project_roles: Tuple[str, ...] = ()
    org_roles: Tuple[str, ...] = ()
    dynamic: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "users", _ids(self.users))
        object.__setattr__(self, "project_roles", _ids(self.project_roles))
        object.__setattr__(self, "org_roles", _ids(self.org_roles))
        dynamic = _ids(self.dynamic)
        for kind in dynamic:
            if kind not in DynamicRecipient.ALL:
                raise ValueError(
                    f"dynamic recipient '{kind}' not valid. "
                    f"Must be one of: {sorted(DynamicRecipient.ALL)}"
                )
        object.__setattr__(self, "dynamic", dynamic)

    @property
    def is_empty(self) -> bool:
        return not (self.users or self.project_roles or self.org_roles or self.dynamic)


# ══════════════════════════════════════════════════════════════
# CONDITION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PolicyCondition:
    """
    One predicate on the event or project. All conditions of a policy
    are AND-ed; an empty condition list always matches.

    field: "event.<name>" | "project.<name>" | "custom_field.<definition_id>"
    """

    field: str
    operator: str
    value: Any = None

    def __post_init__(self):
        if not self.field or not isinstance(self.field, str):
            raise ValueError("field must be a non-empty string.")
        if not self.operator or not isinstance(self.operator, str):
            raise ValueError("operator must be a non-empty string.")
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"field": self.field, "operator": self.operator, "value": value}


# ══════════════════════════════════════════════════════════════
# EVENT POLICY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EventPolicy:
    policy_id: str
    name: str
    event_types: FrozenSet[str]
    action_type: ActionType
    recipients: Recipients = field(default_factory=Recipients)
    enabled: bool = True
    scope: PolicyScope = PolicyScope.PROJECT
    conditions: Tuple[PolicyCondition, ...] = ()
    description: Optional[str] = None
    message_template: Optional[str] = None
    project_id: Optional[str] = None
    org_node_id: Optional[str] = None
    source_org_node_id: Optional[str] = None
    source_org_node_name: Optional[str] = None

    def __post_init__(self):
        if not self.policy_id or not isinstance(self.policy_id, str):
            raise ValueError("policy_id must be a non-empty string.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string.")
        if not isinstance(self.enabled, bool):
            raise ValueError("enabled must be a bool.")

        types = frozenset(getattr(t, "value", t) for t in self.event_types)
        if not types:
            raise ValueError("event_types must not be empty.")
        object.__setattr__(self, "event_types", types)
        object.__setattr__(self, "action_type", ActionType.parse(self.action_type))
        if not isinstance(self.scope, PolicyScope):
            object.__setattr__(self, "scope", PolicyScope(self.scope))
        object.__setattr__(self, "conditions", tuple(self.conditions))

    @property
    def inherited(self) -> bool:
        """Seen from a project, organisation-scoped policies are inherited."""
        return self.scope is PolicyScope.ORGANISATION

    @property
    def read_only(self) -> bool:
        return self.inherited

    @property
    def is_approval(self) -> bool:
        return self.action_type is ActionType.APPROVE

    def matches(self, event_type: Any) -> bool:
        """Type match only. Enabled state and conditions are checked by resolution."""
        return getattr(event_type, "value", event_type) in self.event_types

    # ── wire shape ────────────────────────────────────────────

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "EventPolicy":
        inherited = bool(raw.get("inherited")) or (
            bool(raw.get("org_node_id")) and not raw.get("project_id")
        )
        return cls(
            policy_id=str(raw.get("id") or raw.get("policy_id") or ""),
            name=str(raw.get("name") or ""),
            event_types=frozenset(raw.get("event_types") or ()),
            action_type=ActionType.parse(raw.get("action_type", "")),
            recipients=Recipients(
                users=raw.get("recipient_user_ids") or (),
                project_roles=raw.get("recipient_project_role_ids") or (),
                org_roles=raw.get("recipient_org_role_ids") or (),
                dynamic=raw.get("recipient_dynamic") or (),
            ),
            enabled=bool(raw.get("enabled", True)),
            scope=PolicyScope.ORGANISATION if inherited else PolicyScope.PROJECT,
            conditions=tuple(
                PolicyCondition(
                    field=c.get("field", ""),
                    operator=c.get("operator", ""),
                    value=c.get("value"),
                )
                for c in raw.get("conditions") or ()
            ),
            description=raw.get("description"),
            message_template=raw.get("message_template"),
            project_id=raw.get("project_id"),
            org_node_id=raw.get("org_node_id"),
            source_org_node_id=raw.get("source_org_node_id"),
            source_org_node_name=raw.get("source_org_node_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.policy_id,
            "name": self.name,
            "description": self.description,
            "event_types": sorted(self.event_types),
            "conditions": [c.to_dict() for c in self.conditions],
            "action_type": self.action_type.value,
            "message_template": self.message_template,
            "recipient_user_ids": list(self.recipients.users),
            "recipient_project_role_ids": list(self.recipients.project_roles),
            "recipient_org_role_ids": list(self.recipients.org_roles),
            "recipient_dynamic": list(self.recipients.dynamic),
            "project_id": self.project_id,
            "org_node_id": self.org_node_id,
            "enabled": self.enabled,
            "inherited": self.inherited,
            "source_org_node_id": self.source_org_node_id,
            "source_org_node_name": self.source_org_node_name,
        }
