"""
MORIS Policy — Public API
===========================
Notify / approval policies and their resolution semantics.
"""

from portal.policy.errors import (
    InheritedPolicyReadOnly,
    PolicyError,
    PolicyNotFound,
)
from portal.policy.models import (
    ActionType,
    ConditionOperator,
    DynamicRecipient,
    EventPolicy,
    PolicyCondition,
    PolicyScope,
    Recipients,
)
from portal.policy.policy_set import ApprovalHint, PolicySet, hint_for
from portal.policy.recipients import (
    InMemoryRecipientDirectory,
    RecipientDirectory,
    resolve_recipients,
)
from portal.policy.resolution import (
    PolicyResolution,
    default_message,
    matching_policies,
    requires_approval,
    resolve_policies,
)

__all__ = [
    "ActionType",
    "ApprovalHint",
    "ConditionOperator",
    "DynamicRecipient",
    "EventPolicy",
    "InMemoryRecipientDirectory",
    "InheritedPolicyReadOnly",
    "PolicyCondition",
    "PolicyError",
    "PolicyNotFound",
    "PolicyResolution",
    "PolicyScope",
    "PolicySet",
    "Recipients",
    "RecipientDirectory",
    "default_message",
    "hint_for",
    "matching_policies",
    "requires_approval",
    "resolve_policies",
    "resolve_recipients",
]
