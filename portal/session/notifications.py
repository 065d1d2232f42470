"""
MORIS Session — Notification Feed
===================================
The current user's notification list. Refetched on demand, on a timer
(see poller.py) and whenever any surface publishes the notification
refresh topic, e.g. after approving an event.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from portal.config import get_engine_settings
from portal.errors import PortalError
from portal.ports import Notification, NotificationType, PortalBackend
from portal.session.refresh import RefreshBus

logger = logging.getLogger("moris.session")


class NotificationFeed:
    def __init__(
        self,
        backend: PortalBackend,
        user_id: str,
        bus: RefreshBus,
        topic: Optional[str] = None,
    ):
        if not user_id:
            raise ValueError("user_id must be non-empty.")
        self._backend = backend
        self._user_id = user_id
        self._bus = bus
        self._topic = topic or get_engine_settings().notification_refresh_topic
        self._notifications: Tuple[Notification, ...] = ()
        self._error: Optional[str] = None
        self._unsubscribe = bus.subscribe(self._topic, self.on_refresh_signal)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return self._notifications

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def unread(self) -> List[Notification]:
        return [n for n in self._notifications if not n.read]

    def for_event(self, event_id: str) -> List[Notification]:
        return [n for n in self._notifications if n.event_id == event_id]

    def approval_requests(self) -> List[Notification]:
        return [
            n for n in self._notifications
            if n.type == NotificationType.APPROVAL_REQUEST and not n.read
        ]

    async def refresh(self) -> bool:
        try:
            fetched = await self._backend.get_notifications(self._user_id)
        except PortalError as exc:
            logger.warning(f"Notification fetch failed for user {self._user_id}: {exc}")
            self._error = str(exc)
            return False
        self._notifications = tuple(fetched)
        self._error = None
        return True

    async def mark_as_read(self, notification_id: str) -> bool:
        try:
            await self._backend.mark_notification_read(notification_id)
        except PortalError as exc:
            logger.warning(f"Marking notification {notification_id} read failed: {exc}")
            self._error = str(exc)
            return False
        await self.refresh()
        await self._bus.publish(self._topic, skip=self.on_refresh_signal)
        return True

    async def on_refresh_signal(self, topic: str) -> None:
        await self.refresh()

    def close(self) -> None:
        self._unsubscribe()
