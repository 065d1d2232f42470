"""
MORIS Workflow — Approve / Reject
===================================
Resolves a pending event on behalf of the current user.

Flow:
1. Event must be in the view's pending list     (else CONFLICT + refetch)
2. Capability gate: the event type, or the
   dedicated approval capability                 (else DENIED, no call)
3. backend.resolve_event
   - ConflictError / NotFoundError              → CONFLICT + refetch
   - TransportError                             → FAILED, retryable,
                                                  pending list untouched
   - any other PortalError                      → FAILED, retryable
                                                  unless the error says not
4. Success → refetch canonical + pending, then signal every other
   surface on the project topic and the notification topic.

There is no optimistic removal. The event disappears from the pending
list only when the refetch confirms the server resolved it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from portal.config import get_engine_settings
from portal.errors import ConflictError, NotFoundError, PortalError, TransportError
from portal.outcomes import ReasonCode, RejectionReason
from portal.ports import PortalBackend
from portal.session.refresh import RefreshBus, project_topic
from portal.session.view import ProjectView
from portal.workflow.states import Decision

logger = logging.getLogger("moris.workflow")


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    DENIED = "denied"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolutionOutcome:
    event_id: str
    decision: Decision
    status: ResolutionStatus
    reason: Optional[RejectionReason] = None

    @property
    def resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED

    @property
    def retryable(self) -> bool:
        return bool(self.reason and self.reason.retryable)


class ApprovalWorkflow:
    def __init__(
        self,
        backend: PortalBackend,
        bus: RefreshBus,
        notification_topic: Optional[str] = None,
    ):
        self._backend = backend
        self._bus = bus
        self._notification_topic = (
            notification_topic or get_engine_settings().notification_refresh_topic
        )

    async def approve(self, view: ProjectView, event_id: str) -> ResolutionOutcome:
        return await self.resolve(view, event_id, Decision.APPROVE)

    async def reject(self, view: ProjectView, event_id: str) -> ResolutionOutcome:
        return await self.resolve(view, event_id, Decision.REJECT)

    async def resolve(
        self, view: ProjectView, event_id: str, decision: Any
    ) -> ResolutionOutcome:
        decision = Decision.parse(decision)

        def outcome(status, code=None, message="", retryable=False):
            reason = None
            if code is not None:
                reason = RejectionReason(code=code, message=message, retryable=retryable)
            return ResolutionOutcome(
                event_id=event_id, decision=decision, status=status, reason=reason
            )

        if view.closed:
            return outcome(
                ResolutionStatus.DENIED, ReasonCode.VIEW_CLOSED, "Project view is closed."
            )

        event = view.find_pending(event_id)
        if event is None:
            logger.info(
                f"Event {event_id} is not pending in view of {view.project_id}; refetching"
            )
            await view.refresh_after_change()
            return outcome(
                ResolutionStatus.CONFLICT,
                ReasonCode.EVENT_NOT_PENDING,
                f"Event '{event_id}' is not pending on this project.",
            )

        access = view.access
        if not access.can_resolve(event.type):
            code = (
                ReasonCode.CAPABILITIES_NOT_READY if access.is_read_only
                else ReasonCode.CAPABILITY_DENIED
            )
            return outcome(
                ResolutionStatus.DENIED,
                code,
                f"Not allowed to {decision.value} '{event.type}' events.",
            )

        try:
            await self._backend.resolve_event(event_id, decision.value)
        except (ConflictError, NotFoundError) as exc:
            logger.info(f"Resolve conflict on event {event_id}: {exc}")
            await view.refresh_after_change()
            return outcome(ResolutionStatus.CONFLICT, ReasonCode.CONFLICT, str(exc))
        except TransportError as exc:
            logger.warning(f"Resolve of event {event_id} failed: {exc}")
            return outcome(
                ResolutionStatus.FAILED,
                ReasonCode.TRANSPORT_FAILURE,
                str(exc),
                retryable=True,
            )
        except PortalError as exc:
            logger.warning(f"Resolve of event {event_id} rejected by backend: {exc}")
            return outcome(
                ResolutionStatus.FAILED,
                ReasonCode.BACKEND_FAILURE,
                str(exc) or type(exc).__name__,
                retryable=getattr(exc, "retryable", True),
            )

        logger.info(f"Event {event_id} {decision.target_status.value} on {view.project_id}")
        await view.refresh_after_change(event.event_type)
        await self._bus.publish(project_topic(view.project_id), skip=view.on_refresh_signal)
        await self._bus.publish(self._notification_topic)
        return outcome(ResolutionStatus.RESOLVED)
