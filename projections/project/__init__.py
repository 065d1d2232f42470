"""
MORIS Projections — Project
=============================
Canonical project + pending events → projected project.

Usage:
    from projections.project import apply_pending_events
    projected = apply_pending_events(canonical, pending_events)
"""

from projections.project.engine import apply_event, apply_pending_events
from projections.project.reducers import HANDLERS, SkipEvent, verify_handlers

__all__ = [
    "apply_event",
    "apply_pending_events",
    "HANDLERS",
    "SkipEvent",
    "verify_handlers",
]
