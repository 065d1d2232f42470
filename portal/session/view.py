"""
MORIS Session — Project View
==============================
Everything one surface knows about one project:

    canonical        last server-confirmed state
    pending_events   raw pending list, verbatim and in server order
    policies         project + inherited policy set
    access           capability context for this project

The projected project is derived on every access from canonical and
pending. Nothing here writes canonical or pending locally, except
appending the echo of an event this view just submitted.

Failure handling:
- A failed fetch keeps the previous state visible and records a
  FetchError for that operation. The next successful fetch clears it.
- An unreadable pending row is skipped with a warning. The rest of the
  list is kept.
- A submit the backend refuses comes back as a FAILED outcome.
- A response that arrives after the view was closed, or after a newer
  request for the same operation, is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from portal.capabilities.models import AccessContext, CapabilityStatus
from portal.capabilities.resolver import CapabilityResolver
from portal.errors import NotFoundError, PortalError, TransportError
from portal.events.models import Event, EventRequest
from portal.events.types import EventType
from portal.outcomes import ReasonCode, RejectionReason
from portal.policy.policy_set import ApprovalHint, PolicySet, hint_for
from portal.ports import PortalBackend
from portal.session.refresh import RefreshBus, project_topic
from projections.project import apply_pending_events

logger = logging.getLogger("moris.session")

_POLICY_EVENTS = frozenset({
    EventType.EVENT_POLICY_ADDED,
    EventType.EVENT_POLICY_UPDATED,
    EventType.EVENT_POLICY_REMOVED,
})
_ROLE_EVENTS = frozenset({
    EventType.PROJECT_ROLE_ASSIGNED,
    EventType.PROJECT_ROLE_UNASSIGNED,
})


# ══════════════════════════════════════════════════════════════
# VALUE OBJECTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FetchError:
    """Recoverable error indicator for one fetch operation."""

    operation: str
    message: str
    retryable: bool = True


class SubmissionStatus(Enum):
    APPLIED = "applied"      # server auto-applied, canonical already updated
    PENDING = "pending"      # parked awaiting approval
    DENIED = "denied"        # gated locally, backend not called
    FAILED = "failed"        # backend call did not complete


@dataclass(frozen=True)
class SubmissionOutcome:
    status: SubmissionStatus
    event: Optional[Event] = None
    reason: Optional[RejectionReason] = None

    @property
    def accepted(self) -> bool:
        return self.status in (SubmissionStatus.APPLIED, SubmissionStatus.PENDING)

    @property
    def retryable(self) -> bool:
        return bool(self.reason and self.reason.retryable)


def _denied(code: str, message: str) -> SubmissionOutcome:
    return SubmissionOutcome(
        status=SubmissionStatus.DENIED,
        reason=RejectionReason(code=code, message=message),
    )


# ══════════════════════════════════════════════════════════════
# PROJECT VIEW
# ══════════════════════════════════════════════════════════════

class ProjectView:
    """Per-project state, keyed by project id. Closed on navigation."""

    def __init__(
        self,
        project_id: str,
        backend: PortalBackend,
        resolver: CapabilityResolver,
        bus: RefreshBus,
    ):
        if not project_id:
            raise ValueError("project_id must be non-empty.")
        self._project_id = project_id
        self._backend = backend
        self._resolver = resolver
        self._bus = bus

        self._canonical: Optional[Dict[str, Any]] = None
        self._pending: Tuple[Event, ...] = ()
        self._policies: Optional[PolicySet] = None
        self._errors: Dict[str, FetchError] = {}
        self._tokens: Dict[str, int] = {}
        self._closed = False

        resolver.bind(project_id)
        self._unsubscribe = bus.subscribe(project_topic(project_id), self.on_refresh_signal)

    # ── state ─────────────────────────────────────────────────

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def canonical(self) -> Optional[Dict[str, Any]]:
        return self._canonical

    @property
    def pending_events(self) -> Tuple[Event, ...]:
        return self._pending

    @property
    def policies(self) -> Optional[PolicySet]:
        return self._policies

    @property
    def projected(self) -> Optional[Dict[str, Any]]:
        """Canonical with every pending event folded in. Recomputed per access."""
        if self._canonical is None:
            return None
        return apply_pending_events(self._canonical, self._pending)

    @property
    def access(self) -> AccessContext:
        if self._closed or self._resolver.project_id != self._project_id:
            return AccessContext.loading(self._project_id)
        return self._resolver.current

    @property
    def errors(self) -> Dict[str, FetchError]:
        return dict(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def find_pending(self, event_id: str) -> Optional[Event]:
        for event in self._pending:
            if event.event_id == event_id:
                return event
        return None

    def approval_hint(self, event_type: Any) -> Optional[ApprovalHint]:
        """None until policies are loaded."""
        if self._policies is None:
            return None
        return hint_for(self._policies, event_type)

    def is_hint_current(self, hint: ApprovalHint) -> bool:
        return self._policies is not None and hint.is_current(self._policies)

    # ── fetching ──────────────────────────────────────────────

    async def _fetch(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], None],
    ) -> bool:
        if self._closed:
            return False
        token = self._tokens.get(operation, 0) + 1
        self._tokens[operation] = token

        try:
            result = await call()
        except PortalError as exc:
            if self._closed or self._tokens.get(operation) != token:
                return False
            logger.warning(
                f"Fetch '{operation}' failed for project {self._project_id}: {exc}"
            )
            self._errors[operation] = FetchError(
                operation=operation,
                message=str(exc),
                retryable=getattr(exc, "retryable", True),
            )
            return False

        if self._closed or self._tokens.get(operation) != token:
            logger.debug(
                f"Discarded stale '{operation}' response for project {self._project_id}"
            )
            return False

        apply(result)
        self._errors.pop(operation, None)
        return True

    async def refresh_canonical(self) -> bool:
        def apply(project):
            self._canonical = dict(project)

        return await self._fetch(
            "canonical",
            lambda: self._backend.get_canonical_project(self._project_id),
            apply,
        )

    async def refresh_pending(self) -> bool:
        def apply(events):
            parsed = []
            for raw in events:
                if isinstance(raw, Event):
                    parsed.append(raw)
                    continue
                try:
                    parsed.append(Event.from_dict(raw))
                except (AttributeError, TypeError, ValueError) as exc:
                    logger.warning(
                        f"Unreadable pending event skipped for project "
                        f"{self._project_id}: {exc}"
                    )
            self._pending = tuple(parsed)

        return await self._fetch(
            "pending",
            lambda: self._backend.get_pending_events(self._project_id),
            apply,
        )

    async def refresh_policies(self) -> bool:
        def apply(policies):
            self._policies = PolicySet(self._project_id, policies)

        return await self._fetch(
            "policies",
            lambda: self._backend.get_policies(self._project_id, True),
            apply,
        )

    async def refresh_capabilities(self) -> bool:
        if self._closed or self._resolver.project_id != self._project_id:
            return False
        context = await self._resolver.refresh()
        if self._closed or context.project_id != self._project_id:
            return False
        if context.status is CapabilityStatus.ERROR:
            self._errors["capabilities"] = FetchError(
                operation="capabilities", message=context.error or ""
            )
            return False
        self._errors.pop("capabilities", None)
        return True

    async def refresh_all(self) -> None:
        await asyncio.gather(
            self.refresh_capabilities(),
            self.refresh_canonical(),
            self.refresh_pending(),
            self.refresh_policies(),
        )

    async def load(self) -> "ProjectView":
        await self.refresh_all()
        logger.info(
            f"Project view loaded: {self._project_id} "
            f"({len(self._pending)} pending, {len(self._errors)} errors)"
        )
        return self

    async def refresh_after_change(self, event_type: Optional[EventType] = None) -> None:
        """Refetch what a mutation of `event_type` can have changed."""
        tasks = [self.refresh_canonical(), self.refresh_pending()]
        if event_type in _POLICY_EVENTS:
            tasks.append(self.refresh_policies())
        if event_type in _ROLE_EVENTS:
            tasks.append(self.refresh_capabilities())
        await asyncio.gather(*tasks)

    async def on_refresh_signal(self, topic: str) -> None:
        """Refresh-bus handler: another surface changed this project."""
        if self._closed:
            return
        logger.debug(f"Refresh signal {topic} received by view {self._project_id}")
        await asyncio.gather(
            self.refresh_canonical(),
            self.refresh_pending(),
            self.refresh_policies(),
        )

    # ── mutation ──────────────────────────────────────────────

    async def submit(self, request: EventRequest) -> SubmissionOutcome:
        """
        Gate, submit, then refetch.

        The only local write is appending the submitted event's echo to
        the pending list; the refetch that follows replaces it.
        """
        if self._closed:
            return _denied(ReasonCode.VIEW_CLOSED, "Project view is closed.")
        if request.project_id != self._project_id:
            return _denied(
                ReasonCode.PROJECT_MISMATCH,
                f"Request for project {request.project_id} submitted "
                f"from view of {self._project_id}.",
            )

        access = self.access
        if access.is_read_only:
            return _denied(
                ReasonCode.CAPABILITIES_NOT_READY,
                "Capabilities are not available; the project is read-only.",
            )
        if not access.has_access(request.event_type):
            return _denied(
                ReasonCode.CAPABILITY_DENIED,
                f"Not allowed to create '{request.event_type.value}' events "
                f"on this project.",
            )

        try:
            event = await self._backend.submit_event(request, self._resolver.user_id)
        except TransportError as exc:
            logger.warning(f"Submit failed for project {self._project_id}: {exc}")
            return SubmissionOutcome(
                status=SubmissionStatus.FAILED,
                reason=RejectionReason(
                    code=ReasonCode.TRANSPORT_FAILURE, message=str(exc), retryable=True
                ),
            )
        except NotFoundError as exc:
            return SubmissionOutcome(
                status=SubmissionStatus.FAILED,
                reason=RejectionReason(code=ReasonCode.NOT_FOUND, message=str(exc)),
            )
        except PortalError as exc:
            logger.warning(f"Submit rejected by backend for project {self._project_id}: {exc}")
            return SubmissionOutcome(
                status=SubmissionStatus.FAILED,
                reason=RejectionReason(
                    code=ReasonCode.BACKEND_FAILURE,
                    message=str(exc) or type(exc).__name__,
                    retryable=getattr(exc, "retryable", True),
                ),
            )

        status = SubmissionStatus.PENDING if event.is_pending else SubmissionStatus.APPLIED
        if self._closed:
            return SubmissionOutcome(status=status, event=event)

        if event.is_pending and event.project_id == self._project_id:
            if self.find_pending(event.event_id) is None:
                self._pending = self._pending + (event,)

        logger.info(
            f"Submitted {event.type} on project {self._project_id}: {status.value}"
        )
        await self.refresh_after_change(request.event_type)
        await self._bus.publish(project_topic(self._project_id), skip=self.on_refresh_signal)
        return SubmissionOutcome(status=status, event=event)

    # ── lifecycle ─────────────────────────────────────────────

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        logger.debug(f"Project view closed: {self._project_id}")
