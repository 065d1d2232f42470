"""
MORIS Policy Resolution — Tests
=================================
Matching, approval requirement, recipient union and message text.
"""

from __future__ import annotations

import pytest

from portal.events import EventType
from portal.policy import (
    ActionType,
    DynamicRecipient,
    EventPolicy,
    InMemoryRecipientDirectory,
    PolicyCondition,
    Recipients,
    default_message,
    matching_policies,
    requires_approval,
    resolve_policies,
    resolve_recipients,
)


PROJECT_ID = "proj-1"
ORG_NODE_ID = "org-1"


def _policy(policy_id, event_types, action, recipients=None, **kw):
    return EventPolicy(
        policy_id=policy_id,
        name=f"Policy {policy_id}",
        event_types=frozenset(event_types),
        action_type=action,
        recipients=recipients or Recipients(),
        **kw,
    )


@pytest.fixture
def directory():
    d = InMemoryRecipientDirectory()
    d.assign_project_role(PROJECT_ID, "role-R", "user-2")
    d.assign_project_role(PROJECT_ID, "role-R", "user-3")
    d.assign_org_role(ORG_NODE_ID, "org-admin", "user-9")
    d.set_dynamic(PROJECT_ID, DynamicRecipient.PROJECT_OWNER, ["user-owner"])
    return d


# ══════════════════════════════════════════════════════════════
# MATCHING
# ══════════════════════════════════════════════════════════════

class TestMatching:
    def test_no_policies_means_auto_apply(self):
        assert matching_policies([], EventType.TITLE_CHANGED) == []
        assert not requires_approval([], EventType.TITLE_CHANGED)

    def test_disabled_policy_never_matches(self):
        disabled = _policy("p1", [EventType.TITLE_CHANGED], ActionType.APPROVE, enabled=False)
        assert matching_policies([disabled], EventType.TITLE_CHANGED) == []
        assert not requires_approval([disabled], EventType.TITLE_CHANGED)

    def test_notify_only_does_not_require_approval(self):
        notify = _policy("p1", [EventType.TITLE_CHANGED], ActionType.NOTIFY)
        assert matching_policies([notify], EventType.TITLE_CHANGED) == [notify]
        assert not requires_approval([notify], EventType.TITLE_CHANGED)

    def test_any_approve_policy_requires_approval(self):
        notify = _policy("p1", [EventType.TITLE_CHANGED], ActionType.NOTIFY)
        approve = _policy("p2", [EventType.TITLE_CHANGED], ActionType.APPROVE)
        assert requires_approval([notify, approve], EventType.TITLE_CHANGED)

    def test_other_types_do_not_match(self):
        approve = _policy("p1", [EventType.PRODUCT_ADDED], ActionType.APPROVE)
        assert not requires_approval([approve], EventType.PRODUCT_REMOVED)

    def test_unknown_type_matches_nothing(self):
        approve = _policy("p1", [EventType.PRODUCT_ADDED], ActionType.APPROVE)
        assert matching_policies([approve], "project.budget_added") == []

    def test_conditions_filter_on_event_data(self):
        approve = _policy(
            "p1",
            [EventType.TITLE_CHANGED],
            ActionType.APPROVE,
            conditions=(PolicyCondition("event.title", "starts_with", "Final"),),
        )
        assert requires_approval([approve], EventType.TITLE_CHANGED, {"title": "Final report"})
        assert not requires_approval([approve], EventType.TITLE_CHANGED, {"title": "Draft"})

    def test_conditions_see_event_type(self):
        approve = _policy(
            "p1",
            [EventType.TITLE_CHANGED],
            ActionType.APPROVE,
            conditions=(PolicyCondition("event.type", "equals", "project.title_changed"),),
        )
        assert requires_approval([approve], EventType.TITLE_CHANGED, {})

    def test_input_order_kept(self):
        a = _policy("a", [EventType.TITLE_CHANGED], ActionType.NOTIFY)
        b = _policy("b", [EventType.TITLE_CHANGED], ActionType.APPROVE)
        c = _policy("c", [EventType.TITLE_CHANGED], ActionType.NOTIFY)
        assert [p.policy_id for p in matching_policies([c, a, b], EventType.TITLE_CHANGED)] == ["c", "a", "b"]


# ══════════════════════════════════════════════════════════════
# RECIPIENTS
# ══════════════════════════════════════════════════════════════

class TestRecipients:
    def test_all_kinds_are_unioned(self, directory):
        recipients = Recipients(
            users=("user-1",),
            project_roles=("role-R",),
            org_roles=("org-admin",),
            dynamic=(DynamicRecipient.PROJECT_OWNER,),
        )
        resolved = resolve_recipients(recipients, directory, PROJECT_ID, ORG_NODE_ID)
        assert resolved == frozenset({"user-1", "user-2", "user-3", "user-9", "user-owner"})

    def test_person_ids_map_to_user_ids(self):
        d = InMemoryRecipientDirectory(person_users={"person-1": "user-1"})
        resolved = resolve_recipients(Recipients(users=("person-1",)), d, PROJECT_ID)
        assert resolved == frozenset({"user-1"})

    def test_org_roles_need_an_org_node(self, directory):
        resolved = resolve_recipients(Recipients(org_roles=("org-admin",)), directory, PROJECT_ID)
        assert resolved == frozenset()

    def test_failing_kind_is_skipped(self, directory):
        class Broken(InMemoryRecipientDirectory):
            def project_role_holders(self, role_id, project_id):
                raise LookupError("directory offline")

        broken = Broken(person_users={})
        resolved = resolve_recipients(
            Recipients(users=("user-1",), project_roles=("role-R",)), broken, PROJECT_ID
        )
        assert resolved == frozenset({"user-1"})


# ══════════════════════════════════════════════════════════════
# FULL RESOLUTION
# ══════════════════════════════════════════════════════════════

class TestResolvePolicies:
    def test_notify_and_approve_both_fire(self, directory):
        notify = _policy(
            "p-notify", [EventType.PRODUCT_ADDED], ActionType.NOTIFY,
            Recipients(users=("user-1",)),
        )
        approve = _policy(
            "p-approve", [EventType.PRODUCT_ADDED], ActionType.APPROVE,
            Recipients(project_roles=("role-R",)),
        )
        resolution = resolve_policies([notify, approve], EventType.PRODUCT_ADDED, directory, PROJECT_ID)

        assert resolution.requires_approval
        assert not resolution.auto_apply
        assert resolution.approval_policies == (approve,)
        assert resolution.notify_policies == (notify,)
        assert resolution.approvers == frozenset({"user-2", "user-3"})
        assert resolution.notified == frozenset({"user-1"})
        assert resolution.recipients == frozenset({"user-1", "user-2", "user-3"})
        assert resolution.to_dict()["matching"] == ["p-notify", "p-approve"]

    def test_no_match_auto_applies(self, directory):
        resolution = resolve_policies([], EventType.TITLE_CHANGED, directory, PROJECT_ID)
        assert resolution.auto_apply
        assert resolution.recipients == frozenset()
        assert resolution.event_type == "project.title_changed"


# ══════════════════════════════════════════════════════════════
# MESSAGES
# ══════════════════════════════════════════════════════════════

class TestDefaultMessage:
    def test_approval_text(self):
        policy = _policy("p1", [EventType.PRODUCT_ADDED], ActionType.APPROVE)
        assert default_message(policy, EventType.PRODUCT_ADDED, "Climate") == (
            "Approval requested for event 'project.product_added' on project 'Climate'"
        )

    def test_notify_text(self):
        policy = _policy("p1", [EventType.PRODUCT_ADDED], ActionType.NOTIFY)
        assert default_message(policy, EventType.PRODUCT_ADDED, "Climate") == (
            "Event 'project.product_added' occurred on project 'Climate'"
        )

    def test_template_placeholders(self):
        policy = _policy(
            "p1", [EventType.PRODUCT_ADDED], ActionType.NOTIFY,
            message_template="{{event.name}} on {{project.title}} ({{event.type}})",
        )
        assert default_message(policy, EventType.PRODUCT_ADDED, "Climate") == (
            "Product Addition on Climate (project.product_added)"
        )
