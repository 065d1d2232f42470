"""
MORIS Event Model — Tests
===========================
Closed taxonomy, payload validation, request builders and the
lenient Event wire parser.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from portal.events import (
    PAYLOAD_TYPES,
    Event,
    EventRequest,
    EventStatus,
    EventType,
    InvalidEventPayload,
    UnknownEventType,
    friendly_name,
    parse_event_type,
    verify_catalogue,
)
from portal.events import builders
from portal.policy.models import ActionType


PROJECT_ID = "proj-1"


# ══════════════════════════════════════════════════════════════
# CATALOGUE
# ══════════════════════════════════════════════════════════════

class TestCatalogue:
    def test_every_type_has_a_payload_shape(self):
        assert set(PAYLOAD_TYPES) == set(EventType)
        verify_catalogue()

    def test_wire_values(self):
        assert EventType.TITLE_CHANGED.value == "project.title_changed"
        assert EventType.PROJECT_ROLE_UNASSIGNED.value == "project.role_unassigned"
        assert str(EventType.RAID_LINKED) == "project.raid_linked"

    def test_parse_never_raises(self):
        assert parse_event_type("project.title_changed") is EventType.TITLE_CHANGED
        assert parse_event_type("project.budget_added") is None
        assert parse_event_type(None) is None
        assert parse_event_type(42) is None

    def test_friendly_name(self):
        assert friendly_name(EventType.PRODUCT_ADDED) == "Product Addition"
        assert friendly_name("project.future_thing") == "project.future_thing"

    def test_terminal_statuses(self):
        assert not EventStatus.PENDING.is_terminal
        assert EventStatus.APPROVED.is_terminal
        assert EventStatus.REJECTED.is_terminal


# ══════════════════════════════════════════════════════════════
# BUILDERS
# ══════════════════════════════════════════════════════════════

class TestBuilders:
    def test_title_changed(self):
        request = builders.title_changed(PROJECT_ID, "New title")
        assert isinstance(request, EventRequest)
        assert request.event_type is EventType.TITLE_CHANGED
        assert request.data == {"title": "New title"}
        assert request.to_dict() == {
            "project_id": PROJECT_ID,
            "type": "project.title_changed",
            "data": {"title": "New title"},
        }

    def test_empty_title_rejected_before_submission(self):
        with pytest.raises(InvalidEventPayload, match="title"):
            builders.title_changed(PROJECT_ID, "   ")

    def test_description_may_be_empty(self):
        assert builders.description_changed(PROJECT_ID, "").data == {"description": ""}

    def test_start_date_accepts_date_and_iso_text(self):
        assert builders.start_date_changed(PROJECT_ID, date(2025, 1, 1)).data == {
            "start_date": "2025-01-01"
        }
        assert builders.start_date_changed(PROJECT_ID, "2025-01-01").data == {
            "start_date": "2025-01-01"
        }
        stamp = datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc)
        assert builders.end_date_changed(PROJECT_ID, stamp).data == {
            "end_date": stamp.isoformat()
        }

    def test_invalid_date_rejected(self):
        with pytest.raises(InvalidEventPayload, match="ISO-8601"):
            builders.start_date_changed(PROJECT_ID, "first of january")

    def test_custom_field_value_is_text(self):
        assert builders.custom_field_value_set(PROJECT_ID, "cf-1", 12).data == {
            "definition_id": "cf-1",
            "value": "12",
        }
        assert builders.custom_field_value_set(PROJECT_ID, "cf-1", True).data["value"] == "true"
        assert builders.custom_field_value_set(PROJECT_ID, "cf-1", None).data["value"] == ""
        assert (
            builders.custom_field_value_set(PROJECT_ID, "cf-1", date(2025, 3, 1)).data["value"]
            == "2025-03-01"
        )

    def test_role_assignment_requires_both_ids(self):
        request = builders.project_role_assigned(PROJECT_ID, "person-1", "role-1")
        assert request.data == {"person_id": "person-1", "project_role_id": "role-1"}
        with pytest.raises(InvalidEventPayload, match="project_role_id"):
            builders.project_role_unassigned(PROJECT_ID, "person-1", "")

    def test_policy_added_normalizes_action_and_types(self):
        request = builders.event_policy_added(
            PROJECT_ID,
            name="Approve products",
            event_types=[EventType.PRODUCT_ADDED],
            action_type=ActionType.APPROVE,
            recipient_project_role_ids=["role-lead"],
        )
        assert request.data["event_types"] == ["project.product_added"]
        assert request.data["action_type"] == "request_approval"
        assert request.data["recipient_project_role_ids"] == ["role-lead"]
        assert request.data["enabled"] is True

    def test_policy_with_unknown_event_type_rejected(self):
        with pytest.raises(InvalidEventPayload, match="unknown type"):
            builders.event_policy_added(
                PROJECT_ID, name="x", event_types=["project.nope"], action_type="notify"
            )

    def test_policy_with_unknown_action_rejected(self):
        with pytest.raises(InvalidEventPayload, match="action_type"):
            builders.event_policy_added(
                PROJECT_ID,
                name="x",
                event_types=[EventType.TITLE_CHANGED],
                action_type="escalate",
            )

    def test_policy_with_unknown_dynamic_recipient_rejected(self):
        with pytest.raises(InvalidEventPayload, match="recipient_dynamic"):
            builders.event_policy_added(
                PROJECT_ID,
                name="x",
                event_types=[EventType.TITLE_CHANGED],
                action_type="notify",
                recipient_dynamic=["everyone"],
            )

    def test_raid_updated_copies_changes(self):
        changes = {"title": "RAiD title"}
        request = builders.raid_updated(PROJECT_ID, "https://raid.org/10.1/abc", changes)
        changes["title"] = "mutated"
        assert request.data["changes"] == {"title": "RAiD title"}

    def test_missing_project_id_rejected(self):
        with pytest.raises(InvalidEventPayload, match="project_id"):
            builders.product_added("", "prod-1")

    def test_builders_do_not_share_state(self):
        first = builders.product_added(PROJECT_ID, "prod-1")
        second = builders.product_added(PROJECT_ID, "prod-1")
        assert first == second
        assert first.data is not second.data


class TestGenericBuilder:
    def test_dispatches_on_type(self):
        request = builders.build_event_request(
            PROJECT_ID, "project.product_removed", product_id="prod-9"
        )
        assert request.event_type is EventType.PRODUCT_REMOVED
        assert request.data == {"product_id": "prod-9"}

    def test_unknown_type_raises(self):
        with pytest.raises(UnknownEventType):
            builders.build_event_request(PROJECT_ID, "project.budget_added", amount=1)

    def test_wrong_fields_raise_invalid_payload(self):
        with pytest.raises(InvalidEventPayload):
            builders.build_event_request(PROJECT_ID, EventType.TITLE_CHANGED, name="x")


# ══════════════════════════════════════════════════════════════
# EVENT WIRE SHAPE
# ══════════════════════════════════════════════════════════════

class TestEventParsing:
    def test_from_dict_camel_case(self):
        event = Event.from_dict({
            "id": "evt-1",
            "projectId": PROJECT_ID,
            "type": "project.project_role_assigned",
            "status": "pending",
            "createdBy": "user-1",
            "at": "2025-01-01T10:00:00Z",
            "data": {"person_id": "p1", "project_role_id": "r1"},
            "person": {"id": "p1", "givenName": "Ada"},
            "projectRole": {"id": "r1", "slug": "lead"},
        })
        assert event.event_type is EventType.PROJECT_ROLE_ASSIGNED
        assert event.is_pending
        assert event.actor == "user-1"
        assert event.at == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert event.project_role == {"id": "r1", "slug": "lead"}

    def test_from_dict_snake_case(self):
        event = Event.from_dict({
            "id": "evt-2",
            "project_id": PROJECT_ID,
            "type": "project.title_changed",
            "status": "approved",
            "project_role": {"id": "r2"},
        })
        assert event.status is EventStatus.APPROVED
        assert event.project_role == {"id": "r2"}
        assert event.data == {}

    def test_unknown_type_kept_verbatim(self):
        event = Event.from_dict({
            "id": "evt-3",
            "projectId": PROJECT_ID,
            "type": "project.budget_added",
            "status": "pending",
            "data": {"amount": 10},
        })
        assert event.type == "project.budget_added"
        assert event.event_type is None
        assert event.to_dict()["type"] == "project.budget_added"

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError, match="event_id"):
            Event.from_dict({"projectId": PROJECT_ID, "type": "project.title_changed"})

    def test_to_dict_is_a_copy(self):
        event = Event(
            event_id="evt-4",
            project_id=PROJECT_ID,
            type=EventType.TITLE_CHANGED,
            data={"title": "A"},
        )
        assert event.type == "project.title_changed"
        out = event.to_dict()
        out["data"]["title"] = "B"
        assert event.data == {"title": "A"}
