"""
MORIS Policy — Resolution
===========================
Given a candidate event, which policies fire and what happens?

    matching = { p : type ∈ p.event_types ∧ p.enabled ∧ conditions pass }

    any matching APPROVE policy  → event parks as pending
    otherwise                    → event auto-applies

Zero matching policies means auto-apply. Disabled policies never count.
All matching policies fire; a notify and an approve policy for the same
event both contribute recipients.

Pure apart from the RecipientDirectory lookups. Never raises for
unknown event types: they simply match nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from portal.events.types import friendly_name
from portal.policy.conditions import evaluate_conditions
from portal.policy.models import ActionType, EventPolicy
from portal.policy.recipients import RecipientDirectory, resolve_recipients

logger = logging.getLogger("moris.policy")


def _type_token(event_type: Any) -> str:
    return getattr(event_type, "value", event_type)


def _event_context(event_type: Any, event_data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    context: Dict[str, Any] = dict(event_data or {})
    context["type"] = _type_token(event_type)
    return context


# ══════════════════════════════════════════════════════════════
# MATCHING
# ══════════════════════════════════════════════════════════════

def matching_policies(
    policies: Iterable[EventPolicy],
    event_type: Any,
    event_data: Optional[Mapping[str, Any]] = None,
    project: Optional[Mapping[str, Any]] = None,
) -> List[EventPolicy]:
    """Enabled policies listing the type whose conditions pass, in input order."""
    event_context = _event_context(event_type, event_data)
    matched = []
    for policy in policies:
        if not policy.enabled:
            continue
        if not policy.matches(event_type):
            continue
        if not evaluate_conditions(policy.conditions, event_context, project):
            continue
        matched.append(policy)
    return matched


def requires_approval(
    policies: Iterable[EventPolicy],
    event_type: Any,
    event_data: Optional[Mapping[str, Any]] = None,
    project: Optional[Mapping[str, Any]] = None,
) -> bool:
    return any(
        p.action_type is ActionType.APPROVE
        for p in matching_policies(policies, event_type, event_data, project)
    )


# ══════════════════════════════════════════════════════════════
# FULL RESOLUTION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PolicyResolution:
    """
    Outcome of resolving policies for one candidate event.

    Fields:
        event_type:          Type that was resolved.
        matching:            All matching enabled policies, input order.
        approval_policies:   Matching APPROVE policies.
        notify_policies:     Matching NOTIFY policies.
        approvers:           Users asked to approve.
        notified:            Users informed.
        recipients:          approvers ∪ notified.
    """

    event_type: str
    matching: Tuple[EventPolicy, ...] = ()
    approval_policies: Tuple[EventPolicy, ...] = ()
    notify_policies: Tuple[EventPolicy, ...] = ()
    approvers: FrozenSet[str] = frozenset()
    notified: FrozenSet[str] = frozenset()

    @property
    def requires_approval(self) -> bool:
        return bool(self.approval_policies)

    @property
    def auto_apply(self) -> bool:
        return not self.approval_policies

    @property
    def recipients(self) -> FrozenSet[str]:
        return self.approvers | self.notified

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type,
            "requires_approval": self.requires_approval,
            "matching": [p.policy_id for p in self.matching],
            "approvers": sorted(self.approvers),
            "notified": sorted(self.notified),
        }


def resolve_policies(
    policies: Iterable[EventPolicy],
    event_type: Any,
    directory: RecipientDirectory,
    project_id: str,
    org_node_id: Optional[str] = None,
    event_data: Optional[Mapping[str, Any]] = None,
    project: Optional[Mapping[str, Any]] = None,
) -> PolicyResolution:
    matched = matching_policies(policies, event_type, event_data, project)
    approval = tuple(p for p in matched if p.action_type is ActionType.APPROVE)
    notify = tuple(p for p in matched if p.action_type is ActionType.NOTIFY)

    approvers: set = set()
    for policy in approval:
        approvers |= resolve_recipients(policy.recipients, directory, project_id, org_node_id)

    notified: set = set()
    for policy in notify:
        notified |= resolve_recipients(policy.recipients, directory, project_id, org_node_id)

    resolution = PolicyResolution(
        event_type=_type_token(event_type),
        matching=tuple(matched),
        approval_policies=approval,
        notify_policies=notify,
        approvers=frozenset(approvers),
        notified=frozenset(notified),
    )
    logger.debug(
        f"Resolved {resolution.event_type}: {len(matched)} matching, "
        f"{len(approval)} approval, {len(notify)} notify"
    )
    return resolution


# ══════════════════════════════════════════════════════════════
# MESSAGES
# ══════════════════════════════════════════════════════════════

def default_message(
    policy: EventPolicy,
    event_type: Any,
    project_title: str = "",
) -> str:
    """
    Text of the notification or approval request a policy sends.

    A message_template may reference {{project.title}}, {{event.type}}
    and {{event.name}}.
    """
    token = _type_token(event_type)
    if policy.message_template:
        return (
            policy.message_template
            .replace("{{project.title}}", project_title)
            .replace("{{event.type}}", token)
            .replace("{{event.name}}", friendly_name(token))
        )
    if policy.action_type is ActionType.APPROVE:
        return f"Approval requested for event '{token}' on project '{project_title}'"
    return f"Event '{token}' occurred on project '{project_title}'"
