"""
MORIS Policy — Policy Set and Approval Hints
==============================================
PolicySet is the union of a project's own policies and those inherited
from its organisation, as returned by get_policies(include_inherited).

Its revision is a fingerprint of the content. Any edit, addition or
removal changes it, which is how an open form learns that its "will
require approval" hint is stale.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from portal.policy.errors import InheritedPolicyReadOnly, PolicyNotFound
from portal.policy.models import EventPolicy
from portal.policy.resolution import requires_approval


def _fingerprint(policies: Tuple[EventPolicy, ...]) -> str:
    payload = json.dumps(
        [p.to_dict() for p in policies], sort_keys=True, default=str
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class PolicySet:
    """Immutable, ordered view of the policies that apply to one project."""

    def __init__(self, project_id: str, policies: Iterable[EventPolicy] = ()):
        if not project_id:
            raise ValueError("project_id must be non-empty.")
        ordered = list(policies)
        seen = set()
        for policy in ordered:
            if policy.policy_id in seen:
                raise ValueError(f"Duplicate policy_id '{policy.policy_id}'.")
            seen.add(policy.policy_id)

        # Project policies first, inherited ones after; relative order kept.
        own = [p for p in ordered if not p.inherited]
        inherited = [p for p in ordered if p.inherited]
        self._project_id = project_id
        self._policies: Tuple[EventPolicy, ...] = tuple(own + inherited)
        self._revision = _fingerprint(self._policies)

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def revision(self) -> str:
        return self._revision

    @property
    def policies(self) -> Tuple[EventPolicy, ...]:
        return self._policies

    def __iter__(self):
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def editable(self) -> List[EventPolicy]:
        return [p for p in self._policies if not p.inherited]

    def inherited(self) -> List[EventPolicy]:
        return [p for p in self._policies if p.inherited]

    def get(self, policy_id: str) -> EventPolicy:
        for policy in self._policies:
            if policy.policy_id == policy_id:
                return policy
        raise PolicyNotFound(policy_id)

    def ensure_editable(self, policy_id: str) -> EventPolicy:
        """Gate for update/remove from this project's view."""
        policy = self.get(policy_id)
        if policy.inherited:
            raise InheritedPolicyReadOnly(policy_id, policy.source_org_node_id or "")
        return policy

    def requires_approval(
        self,
        event_type: Any,
        event_data: Optional[Mapping[str, Any]] = None,
        project: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        return requires_approval(self._policies, event_type, event_data, project)


# ══════════════════════════════════════════════════════════════
# APPROVAL HINT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ApprovalHint:
    """
    "This change will require approval" indicator for an open form.

    Valid only while the policy set it was computed from is unchanged.
    """

    event_type: str
    requires_approval: bool
    revision: str

    def is_current(self, policy_set: PolicySet) -> bool:
        return self.revision == policy_set.revision


def hint_for(policy_set: PolicySet, event_type: Any) -> ApprovalHint:
    return ApprovalHint(
        event_type=getattr(event_type, "value", event_type),
        requires_approval=policy_set.requires_approval(event_type),
        revision=policy_set.revision,
    )
