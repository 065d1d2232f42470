"""
MORIS Backend — In-Memory Reference Implementation
====================================================
Implements PortalBackend with the server's semantics, for tests and
local wiring:

- submit_event evaluates policies. Any matching approval policy parks
  the event as PENDING and sends approval requests; otherwise the event
  is APPROVED and folded into canonical at once. Notify policies send
  informational notifications either way.
- resolve_event moves a PENDING event to its terminal status exactly
  once. A second resolve is a ConflictError. Approval folds the event
  into canonical; both outcomes mark the event's notifications read
  and tell the actor.
- Approved policy events edit the project's own policy list.

fail_next(operation) injects a failure into the next call of that
operation, to exercise the engine's error paths.

This file contains NO persistence.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from portal.errors import ConflictError, NotFoundError, TransportError
from portal.events.models import Event, EventRequest
from portal.events.types import EventStatus, EventType, friendly_name
from portal.policy.models import ActionType, EventPolicy, PolicyScope, Recipients
from portal.policy.recipients import (
    InMemoryRecipientDirectory,
    RecipientDirectory,
    resolve_recipients,
)
from portal.policy.resolution import default_message, resolve_policies
from portal.ports import Notification, NotificationType
from portal.time.clock import Clock, get_default_clock
from portal.workflow.states import Decision, apply_decision
from projections.project.engine import apply_event

logger = logging.getLogger("moris.backend")

OPERATIONS = frozenset({
    "get_canonical_project",
    "get_pending_events",
    "get_allowed_event_types",
    "get_policies",
    "submit_event",
    "resolve_event",
    "get_notifications",
    "mark_notification_read",
})


def _default_ids() -> str:
    return str(uuid.uuid4())


class InMemoryPortalBackend:
    """Deterministic in-memory server used for bootstrap/tests."""

    def __init__(
        self,
        directory: Optional[RecipientDirectory] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._directory = directory or InMemoryRecipientDirectory()
        self._clock = clock or get_default_clock()
        self._new_id = id_factory or _default_ids

        self._projects: Dict[str, Dict[str, Any]] = {}
        self._events: Dict[str, Event] = {}
        self._project_policies: Dict[str, List[EventPolicy]] = {}
        self._org_policies: Dict[str, List[EventPolicy]] = {}
        self._org_parents: Dict[str, Optional[str]] = {}
        self._org_names: Dict[str, str] = {}
        self._allowed: Dict[Tuple[str, str], FrozenSet[str]] = {}
        self._notifications: Dict[str, Notification] = {}
        self._people: Dict[str, Dict[str, Any]] = {}
        self._products: Dict[str, Dict[str, Any]] = {}
        self._roles: Dict[str, Dict[str, Any]] = {}
        self._failures: Dict[str, List[Exception]] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    @property
    def directory(self) -> RecipientDirectory:
        return self._directory

    # ══════════════════════════════════════════════════════════
    # SETUP
    # ══════════════════════════════════════════════════════════

    def add_project(self, project: Dict[str, Any]) -> None:
        project_id = project.get("id")
        if not project_id:
            raise ValueError("project must carry an 'id'.")
        self._projects[str(project_id)] = copy.deepcopy(dict(project))

    def add_org_node(
        self, org_node_id: str, parent_id: Optional[str] = None, name: str = ""
    ) -> None:
        self._org_parents[org_node_id] = parent_id
        self._org_names[org_node_id] = name or org_node_id

    def add_person(self, person: Dict[str, Any]) -> None:
        self._people[str(person["id"])] = dict(person)

    def add_product(self, product: Dict[str, Any]) -> None:
        self._products[str(product["id"])] = dict(product)

    def add_project_role(self, role: Dict[str, Any]) -> None:
        self._roles[str(role["id"])] = dict(role)

    def add_policy(
        self,
        policy: EventPolicy,
        project_id: Optional[str] = None,
        org_node_id: Optional[str] = None,
    ) -> EventPolicy:
        """Attach a policy to exactly one project or one org node."""
        if (project_id is None) == (org_node_id is None):
            raise ValueError("Give exactly one of project_id or org_node_id.")
        if project_id is not None:
            stored = replace(policy, scope=PolicyScope.PROJECT, project_id=project_id)
            self._project_policies.setdefault(project_id, []).append(stored)
        else:
            stored = replace(
                policy,
                scope=PolicyScope.ORGANISATION,
                org_node_id=org_node_id,
                source_org_node_id=org_node_id,
                source_org_node_name=self._org_names.get(org_node_id, org_node_id),
            )
            self._org_policies.setdefault(org_node_id, []).append(stored)
        return stored

    def grant(self, user_id: str, project_id: str, event_types: Iterable[Any]) -> None:
        tokens = frozenset(getattr(t, "value", t) for t in event_types)
        current = self._allowed.get((user_id, project_id), frozenset())
        self._allowed[(user_id, project_id)] = current | tokens

    def revoke(self, user_id: str, project_id: str, event_types: Iterable[Any]) -> None:
        tokens = frozenset(getattr(t, "value", t) for t in event_types)
        current = self._allowed.get((user_id, project_id), frozenset())
        self._allowed[(user_id, project_id)] = current - tokens

    def fail_next(self, operation: str, exc: Optional[Exception] = None) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation '{operation}'.")
        self._failures.setdefault(operation, []).append(exc or TransportError(operation))

    def event(self, event_id: str) -> Event:
        try:
            return self._events[event_id]
        except KeyError:
            raise NotFoundError("Event", event_id) from None

    def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _project(self, project_id: str) -> Dict[str, Any]:
        try:
            return self._projects[project_id]
        except KeyError:
            raise NotFoundError("Project", project_id) from None

    @staticmethod
    def _org_node_of(project: Dict[str, Any]) -> Optional[str]:
        node = project.get("owning_org_node")
        if isinstance(node, dict) and node.get("id"):
            return str(node["id"])
        return project.get("owning_org_node_id")

    def _org_chain(self, org_node_id: Optional[str]) -> List[str]:
        chain: List[str] = []
        node = org_node_id
        while node is not None and node not in chain:
            chain.append(node)
            node = self._org_parents.get(node)
        return chain

    def _applicable_policies(
        self, project_id: str, include_inherited: bool = True
    ) -> List[EventPolicy]:
        policies = list(self._project_policies.get(project_id, []))
        if include_inherited:
            org_node_id = self._org_node_of(self._project(project_id))
            for node in self._org_chain(org_node_id):
                policies.extend(self._org_policies.get(node, []))
        return policies

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    async def get_canonical_project(self, project_id: str) -> Dict[str, Any]:
        self._enter("get_canonical_project", project_id)
        return copy.deepcopy(self._project(project_id))

    async def get_pending_events(self, project_id: str) -> List[Event]:
        self._enter("get_pending_events", project_id)
        self._project(project_id)
        return [
            e for e in self._events.values()
            if e.project_id == project_id and e.is_pending
        ]

    async def get_allowed_event_types(self, user_id: str, project_id: str) -> FrozenSet[str]:
        self._enter("get_allowed_event_types", user_id, project_id)
        return self._allowed.get((user_id, project_id), frozenset())

    async def get_policies(
        self, project_id: str, include_inherited: bool = True
    ) -> List[EventPolicy]:
        self._enter("get_policies", project_id, include_inherited)
        return self._applicable_policies(project_id, include_inherited)

    async def get_notifications(self, user_id: str) -> List[Notification]:
        self._enter("get_notifications", user_id)
        return [n for n in self._notifications.values() if n.user_id == user_id]

    # ══════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════

    def _hydrate(self, request: EventRequest) -> Dict[str, Any]:
        data = request.data
        snapshots: Dict[str, Any] = {}
        if data.get("product_id"):
            snapshots["product"] = copy.deepcopy(
                self._products.get(data["product_id"], {"id": data["product_id"]})
            )
        if data.get("person_id"):
            snapshots["person"] = copy.deepcopy(
                self._people.get(data["person_id"], {"id": data["person_id"]})
            )
        if data.get("project_role_id"):
            snapshots["project_role"] = copy.deepcopy(
                self._roles.get(data["project_role_id"], {"id": data["project_role_id"]})
            )
        return snapshots

    async def submit_event(self, request: EventRequest, actor_id: str) -> Event:
        self._enter("submit_event", request, actor_id)
        project = self._project(request.project_id)
        org_node_id = self._org_node_of(project)

        resolution = resolve_policies(
            self._applicable_policies(request.project_id),
            request.event_type,
            self._directory,
            request.project_id,
            org_node_id,
            event_data=request.data,
            project=project,
        )
        status = EventStatus.PENDING if resolution.requires_approval else EventStatus.APPROVED

        event = Event(
            event_id=self._new_id(),
            project_id=request.project_id,
            type=request.event_type.value,
            status=status,
            data=copy.deepcopy(request.data),
            at=self._clock.now_utc(),
            actor=actor_id,
            **self._hydrate(request),
        )
        self._events[event.event_id] = event
        logger.info(
            f"Event {event.event_id} ({event.type}) on {event.project_id}: {status.value}"
        )

        title = str(project.get("title") or "")
        for policy in resolution.approval_policies:
            self._send(policy, event, title, org_node_id, NotificationType.APPROVAL_REQUEST)
        for policy in resolution.notify_policies:
            self._send(policy, event, title, org_node_id, NotificationType.INFO)

        if status is EventStatus.APPROVED:
            self._apply_approved(event)
        return event

    async def resolve_event(self, event_id: str, decision: Any) -> None:
        self._enter("resolve_event", event_id, decision)
        current = self.event(event_id)
        if not current.is_pending:
            raise ConflictError(event_id, current.status.value)

        resolved = apply_decision(current, Decision.parse(decision))
        self._events[event_id] = resolved
        if resolved.status is EventStatus.APPROVED:
            self._apply_approved(resolved)

        for notification in list(self._notifications.values()):
            if notification.event_id == event_id and not notification.read:
                self._notifications[notification.notification_id] = replace(
                    notification, read=True
                )
        self._status_update(resolved)
        logger.info(f"Event {event_id} resolved: {resolved.status.value}")

    async def mark_notification_read(self, notification_id: str) -> None:
        self._enter("mark_notification_read", notification_id)
        try:
            notification = self._notifications[notification_id]
        except KeyError:
            raise NotFoundError("Notification", notification_id) from None
        self._notifications[notification_id] = replace(notification, read=True)

    # ══════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════

    def _notify(self, user_id: str, event: Event, message: str, kind: str) -> None:
        for existing in self._notifications.values():
            if (
                existing.user_id == user_id
                and existing.event_id == event.event_id
                and existing.type == kind
            ):
                return
        notification = Notification(
            notification_id=self._new_id(),
            user_id=user_id,
            message=message,
            type=kind,
            event_id=event.event_id,
            project_id=event.project_id,
            sent_at=self._clock.now_utc(),
        )
        self._notifications[notification.notification_id] = notification

    def _send(
        self,
        policy: EventPolicy,
        event: Event,
        project_title: str,
        org_node_id: Optional[str],
        kind: str,
    ) -> None:
        users = resolve_recipients(
            policy.recipients, self._directory, event.project_id, org_node_id
        )
        if not users:
            logger.info(f"Policy {policy.name} resolved no recipients")
            return
        message = default_message(policy, event.type, project_title)
        for user_id in sorted(users):
            self._notify(user_id, event, message, kind)

    def _status_update(self, event: Event) -> None:
        if not event.actor:
            return
        title = str(self._projects.get(event.project_id, {}).get("title") or "")
        message = (
            f"Your {friendly_name(event.type)} on project '{title}' "
            f"was {event.status.value}."
        )
        self._notify(event.actor, event, message, NotificationType.STATUS_UPDATE)

    def _apply_approved(self, event: Event) -> None:
        project = self._projects[event.project_id]
        self._projects[event.project_id] = apply_event(project, event, speculative=False)
        if event.event_type in (
            EventType.EVENT_POLICY_ADDED,
            EventType.EVENT_POLICY_UPDATED,
            EventType.EVENT_POLICY_REMOVED,
        ):
            self._apply_policy_event(event)

    def _policy_from_data(self, policy_id: str, project_id: str, data: Dict[str, Any]) -> EventPolicy:
        return EventPolicy(
            policy_id=policy_id,
            name=data["name"],
            event_types=frozenset(data["event_types"]),
            action_type=ActionType.parse(data["action_type"]),
            recipients=Recipients(
                users=data.get("recipient_user_ids") or (),
                project_roles=data.get("recipient_project_role_ids") or (),
                org_roles=data.get("recipient_org_role_ids") or (),
                dynamic=data.get("recipient_dynamic") or (),
            ),
            enabled=bool(data.get("enabled", True)),
            description=data.get("description"),
            scope=PolicyScope.PROJECT,
            project_id=project_id,
        )

    def _apply_policy_event(self, event: Event) -> None:
        policies = self._project_policies.setdefault(event.project_id, [])
        data = event.data

        if event.event_type is EventType.EVENT_POLICY_ADDED:
            policies.append(self._policy_from_data(self._new_id(), event.project_id, data))
            return

        policy_id = data.get("policy_id")
        index = next(
            (i for i, p in enumerate(policies) if p.policy_id == policy_id), None
        )
        if index is None:
            logger.warning(
                f"Policy {policy_id} is not a project policy of {event.project_id}; "
                f"{event.type} ignored"
            )
            return
        if event.event_type is EventType.EVENT_POLICY_REMOVED:
            del policies[index]
        else:
            policies[index] = self._policy_from_data(policy_id, event.project_id, data)
