"""
MORIS Policy Model — Tests
============================
EventPolicy construction, wire parsing, condition evaluation and the
PolicySet / ApprovalHint pair.
"""

from __future__ import annotations

import pytest

from portal.events import EventType
from portal.policy import (
    ActionType,
    ApprovalHint,
    EventPolicy,
    InheritedPolicyReadOnly,
    PolicyCondition,
    PolicyNotFound,
    PolicyScope,
    PolicySet,
    Recipients,
    hint_for,
)
from portal.policy.conditions import evaluate_condition, evaluate_conditions, extract_value


PROJECT_ID = "proj-1"


def _policy(policy_id="pol-1", event_types=(EventType.PRODUCT_ADDED,), action=ActionType.APPROVE, **kw):
    return EventPolicy(
        policy_id=policy_id,
        name=kw.pop("name", f"Policy {policy_id}"),
        event_types=frozenset(event_types),
        action_type=action,
        **kw,
    )


# ══════════════════════════════════════════════════════════════
# ACTION TYPE
# ══════════════════════════════════════════════════════════════

class TestActionType:
    def test_parse_wire_values(self):
        assert ActionType.parse("notify") is ActionType.NOTIFY
        assert ActionType.parse("request_approval") is ActionType.APPROVE
        assert ActionType.parse("APPROVE") is ActionType.APPROVE
        assert ActionType.parse(ActionType.NOTIFY) is ActionType.NOTIFY

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="not valid"):
            ActionType.parse("escalate")


# ══════════════════════════════════════════════════════════════
# EVENT POLICY
# ══════════════════════════════════════════════════════════════

class TestEventPolicy:
    def test_event_types_normalized_to_strings(self):
        policy = _policy()
        assert policy.event_types == frozenset({"project.product_added"})
        assert policy.matches(EventType.PRODUCT_ADDED)
        assert policy.matches("project.product_added")
        assert not policy.matches(EventType.PRODUCT_REMOVED)

    def test_empty_event_types_rejected(self):
        with pytest.raises(ValueError, match="event_types"):
            _policy(event_types=())

    def test_enabled_must_be_bool(self):
        with pytest.raises(ValueError, match="enabled"):
            _policy(enabled="yes")

    def test_unknown_dynamic_recipient_rejected(self):
        with pytest.raises(ValueError, match="dynamic recipient"):
            Recipients(dynamic=("everyone",))

    def test_recipients_empty(self):
        assert Recipients().is_empty
        assert not Recipients(users=["u1"]).is_empty

    def test_project_scope_is_editable(self):
        policy = _policy()
        assert policy.scope is PolicyScope.PROJECT
        assert not policy.inherited
        assert not policy.read_only
        assert policy.is_approval

    def test_from_dict_project_policy(self):
        policy = EventPolicy.from_dict({
            "id": "pol-7",
            "name": "Notify on title",
            "event_types": ["project.title_changed"],
            "action_type": "notify",
            "recipient_user_ids": ["u1", "u2"],
            "recipient_dynamic": ["project_owner"],
            "project_id": PROJECT_ID,
            "enabled": False,
            "conditions": [{"field": "event.title", "operator": "starts_with", "value": "Draft"}],
        })
        assert policy.policy_id == "pol-7"
        assert policy.action_type is ActionType.NOTIFY
        assert policy.recipients.users == ("u1", "u2")
        assert policy.recipients.dynamic == ("project_owner",)
        assert not policy.enabled
        assert not policy.inherited
        assert policy.conditions[0].operator == "starts_with"

    def test_from_dict_org_policy_is_inherited(self):
        policy = EventPolicy.from_dict({
            "id": "pol-org",
            "name": "Org approval",
            "event_types": ["project.product_added"],
            "action_type": "request_approval",
            "org_node_id": "org-root",
            "source_org_node_name": "Faculty",
        })
        assert policy.inherited
        assert policy.read_only
        assert policy.scope is PolicyScope.ORGANISATION

    def test_to_dict_round_trips_wire_fields(self):
        policy = _policy(
            recipients=Recipients(project_roles=("role-lead",)),
            conditions=(PolicyCondition("event.product_id", "in", ["a", "b"]),),
            project_id=PROJECT_ID,
        )
        out = policy.to_dict()
        assert out["action_type"] == "request_approval"
        assert out["recipient_project_role_ids"] == ["role-lead"]
        assert out["conditions"] == [{"field": "event.product_id", "operator": "in", "value": ["a", "b"]}]
        assert out["inherited"] is False
        assert EventPolicy.from_dict(out) == policy


# ══════════════════════════════════════════════════════════════
# CONDITIONS
# ══════════════════════════════════════════════════════════════

class TestConditions:
    EVENT = {"type": "project.title_changed", "title": "Draft plan", "count": "7"}
    PROJECT = {"Title": "Climate", "custom_fields": {"cf-1": "red"}}

    def test_extract_paths(self):
        assert extract_value("event.title", self.EVENT, self.PROJECT) == "Draft plan"
        assert extract_value("project.title", self.EVENT, self.PROJECT) == "Climate"
        assert extract_value("custom_field.cf-1", self.EVENT, self.PROJECT) == "red"
        assert extract_value("custom_field.cf-9", self.EVENT, self.PROJECT) is None
        assert extract_value("nowhere.x", self.EVENT, self.PROJECT) is None
        assert extract_value("event", self.EVENT, self.PROJECT) is None

    @pytest.mark.parametrize(
        "field,operator,value,expected",
        [
            ("event.title", "equals", "Draft plan", True),
            ("event.title", "not_equals", "Draft plan", False),
            ("event.title", "contains", "plan", True),
            ("event.title", "starts_with", "Final", False),
            ("event.count", "greater_than", 5, True),
            ("event.count", "less_than", 5, False),
            ("event.title", "greater_than", -1, True),
            ("custom_field.cf-1", "in", ["red", "green"], True),
            ("custom_field.cf-1", "not_in", ["red", "green"], False),
            ("event.missing", "exists", None, False),
            ("event.missing", "not_exists", None, True),
        ],
    )
    def test_operators(self, field, operator, value, expected):
        condition = PolicyCondition(field, operator, value)
        assert evaluate_condition(condition, self.EVENT, self.PROJECT) is expected

    def test_unknown_operator_never_matches(self):
        condition = PolicyCondition("event.title", "matches_regex", ".*")
        assert evaluate_condition(condition, self.EVENT, self.PROJECT) is False

    def test_empty_conditions_match(self):
        assert evaluate_conditions([], self.EVENT, self.PROJECT) is True

    def test_conditions_are_anded(self):
        conditions = [
            PolicyCondition("event.title", "contains", "Draft"),
            PolicyCondition("project.title", "equals", "Other"),
        ]
        assert evaluate_conditions(conditions, self.EVENT, self.PROJECT) is False


# ══════════════════════════════════════════════════════════════
# POLICY SET
# ══════════════════════════════════════════════════════════════

class TestPolicySet:
    def _inherited(self, policy_id="pol-org"):
        return _policy(
            policy_id=policy_id,
            scope=PolicyScope.ORGANISATION,
            org_node_id="org-root",
            source_org_node_id="org-root",
        )

    def test_project_policies_listed_first(self):
        org = self._inherited()
        own = _policy("pol-own", action=ActionType.NOTIFY)
        policy_set = PolicySet(PROJECT_ID, [org, own])
        assert [p.policy_id for p in policy_set] == ["pol-own", "pol-org"]
        assert len(policy_set) == 2
        assert policy_set.editable() == [own]
        assert policy_set.inherited() == [org]

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            PolicySet(PROJECT_ID, [_policy(), _policy()])

    def test_get_unknown_raises(self):
        with pytest.raises(PolicyNotFound):
            PolicySet(PROJECT_ID, []).get("nope")

    def test_inherited_policy_is_read_only(self):
        policy_set = PolicySet(PROJECT_ID, [self._inherited()])
        with pytest.raises(InheritedPolicyReadOnly, match="org-root"):
            policy_set.ensure_editable("pol-org")

    def test_own_policy_is_editable(self):
        own = _policy("pol-own")
        assert PolicySet(PROJECT_ID, [own]).ensure_editable("pol-own") is own

    def test_revision_is_content_based(self):
        a = PolicySet(PROJECT_ID, [_policy()])
        b = PolicySet(PROJECT_ID, [_policy()])
        assert a.revision == b.revision
        changed = PolicySet(PROJECT_ID, [_policy(enabled=False)])
        assert changed.revision != a.revision

    def test_inherited_approval_policy_counts(self):
        policy_set = PolicySet(PROJECT_ID, [self._inherited()])
        assert policy_set.requires_approval(EventType.PRODUCT_ADDED)


class TestApprovalHint:
    def test_hint_reflects_policy_set(self):
        policy_set = PolicySet(PROJECT_ID, [_policy()])
        hint = hint_for(policy_set, EventType.PRODUCT_ADDED)
        assert isinstance(hint, ApprovalHint)
        assert hint.event_type == "project.product_added"
        assert hint.requires_approval
        assert hint.is_current(policy_set)
        assert not hint_for(policy_set, EventType.TITLE_CHANGED).requires_approval

    def test_hint_goes_stale_when_policy_disabled(self):
        before = PolicySet(PROJECT_ID, [_policy()])
        hint = hint_for(before, EventType.PRODUCT_ADDED)
        after = PolicySet(PROJECT_ID, [_policy(enabled=False)])
        assert not hint.is_current(after)
        assert not hint_for(after, EventType.PRODUCT_ADDED).requires_approval
