"""
MORIS Projections — Project Projection Engine
===============================================
apply_pending_events(canonical, events) → projected project

Doctrine:
- Pure. The canonical snapshot is deep-copied first, always, so a
  caller holding `canonical` never observes projection side effects.
- Deterministic and idempotent. Same inputs → structurally equal output.
- Ordered. Events apply in the order given; the server's order is
  causal order. Scalars are last-write-wins; add/remove pairs net out.
- Only PENDING events apply. Approved ones are already in canonical.
- Never raises for event content. Unknown types are ignored; stale or
  malformed payloads are logged and have no effect.

The projected project is a plain dict. It is never persisted.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from portal.events.models import Event
from projections.project.reducers import HANDLERS, SkipEvent

logger = logging.getLogger("moris.projection")

EventLike = Union[Event, Mapping[str, Any]]


def _coerce(raw: EventLike) -> Optional[Event]:
    if isinstance(raw, Event):
        return raw
    if isinstance(raw, Mapping):
        try:
            return Event.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.warning(f"Unreadable pending event skipped: {exc}")
            return None
    logger.warning(f"Unsupported pending event of type {type(raw).__name__} skipped")
    return None


def _fold(state: Dict[str, Any], event: Event, speculative: bool) -> None:
    """Apply one event to a working copy in place. Never raises."""
    event_type = event.event_type
    if event_type is None:
        logger.debug(f"Unknown event type '{event.type}' ignored ({event.event_id})")
        return

    project_id = state.get("id")
    if project_id is not None and str(project_id) != event.project_id:
        logger.warning(
            f"Event {event.event_id} belongs to project {event.project_id}, "
            f"not {project_id}; skipped"
        )
        return

    handler = HANDLERS[event_type]
    try:
        handler(state, event, speculative)
    except SkipEvent as skip:
        logger.warning(f"Projection: {skip}")
    except Exception as exc:
        logger.warning(
            f"Projection rule for {event.type} failed on event "
            f"{event.event_id}: {exc}",
            exc_info=True,
        )


def apply_pending_events(
    canonical: Optional[Mapping[str, Any]],
    events: Optional[Iterable[EventLike]],
) -> Dict[str, Any]:
    """
    Fold pending events onto a deep copy of the canonical project.

    Args:
        canonical: Last server-confirmed project state (read-only).
        events:    Pending events in server order. Non-pending ones are skipped.

    Returns:
        A new dict: the project as if every pending event were approved.
    """
    state: Dict[str, Any] = copy.deepcopy(dict(canonical)) if canonical else {}
    applied = 0

    for raw in events or ():
        event = _coerce(raw)
        if event is None or not event.is_pending:
            continue
        _fold(state, event, speculative=True)
        applied += 1

    if applied:
        logger.debug(f"Projected {applied} pending events onto project {state.get('id')}")
    return state


def apply_event(
    state: Optional[Mapping[str, Any]],
    event: EventLike,
    speculative: bool = True,
) -> Dict[str, Any]:
    """
    Fold a single event onto a copy of `state`, regardless of status.

    speculative=False is the approved fold: no pending markers, member
    ids without the pending prefix.
    """
    result: Dict[str, Any] = copy.deepcopy(dict(state)) if state else {}
    coerced = _coerce(event)
    if coerced is not None:
        _fold(result, coerced, speculative=speculative)
    return result
