"""
MORIS Session — Public API
============================
Per-project view state, refresh signalling and polling.
"""

from portal.session.errors import DuplicateSubscriber, InvalidTopic, RefreshBusError
from portal.session.notifications import NotificationFeed
from portal.session.poller import Poller, notifications_poller, pending_events_poller
from portal.session.refresh import RefreshBus, project_topic
from portal.session.session import ProjectSession
from portal.session.view import (
    FetchError,
    ProjectView,
    SubmissionOutcome,
    SubmissionStatus,
)

__all__ = [
    "DuplicateSubscriber",
    "FetchError",
    "InvalidTopic",
    "NotificationFeed",
    "Poller",
    "ProjectSession",
    "ProjectView",
    "RefreshBus",
    "RefreshBusError",
    "SubmissionOutcome",
    "SubmissionStatus",
    "notifications_poller",
    "pending_events_poller",
    "project_topic",
]
