"""
MORIS Session — Refresh Bus
=============================
Same-process "refresh now" channel between UI surfaces.

Approving an event in one surface must be reflected in every other
surface showing the same project. A surface that changed something
publishes the project's topic; every subscribed view refetches.

Dispatch behavior:
1. Look up handlers by topic
2. Await handlers sequentially, in registration order
3. Catch handler exceptions per handler
4. Log failure
5. Continue to next handler

A failing handler must NOT break delivery to the others, and publish()
never raises. Delivery carries no payload: the signal only says
"refetch", so delivering it twice is harmless.
"""

from __future__ import annotations

import inspect
import logging
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from portal.session.errors import DuplicateSubscriber, InvalidTopic

logger = logging.getLogger("moris.session")

Handler = Callable[[str], Union[None, Awaitable[None]]]


def project_topic(project_id: str) -> str:
    """Topic a project's views listen on."""
    return f"project:{project_id}:should-refresh"


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", str(handler))


class RefreshBus:
    """In-memory topic → handlers registry with fail-safe delivery."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}
        self._lock = Lock()

    @staticmethod
    def _validate_topic(topic: str) -> None:
        if not topic or not isinstance(topic, str):
            raise InvalidTopic(topic)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], bool]:
        """
        Register a handler for a topic.

        Returns a callable that unsubscribes the handler.

        Raises:
            InvalidTopic:        empty topic
            DuplicateSubscriber: handler already registered on this topic
        """
        self._validate_topic(topic)
        if not callable(handler):
            raise TypeError(f"Handler must be callable, got {type(handler)}.")

        with self._lock:
            handlers = self._subscribers.setdefault(topic, [])
            for existing in handlers:
                if existing == handler:
                    raise DuplicateSubscriber(topic, _handler_name(handler))
            handlers.append(handler)

        logger.debug(f"Subscribed {_handler_name(handler)} → {topic}")
        return lambda: self.unsubscribe(topic, handler)

    def unsubscribe(self, topic: str, handler: Handler) -> bool:
        with self._lock:
            handlers = self._subscribers.get(topic, [])
            for index, existing in enumerate(handlers):
                if existing == handler:
                    del handlers[index]
                    if not handlers:
                        del self._subscribers[topic]
                    return True
        return False

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def topics(self) -> frozenset:
        with self._lock:
            return frozenset(self._subscribers.keys())

    async def publish(self, topic: str, skip: Optional[Handler] = None) -> dict:
        """
        Deliver a refresh signal to every handler on the topic.

        Args:
            topic: Topic to signal.
            skip:  Handler to leave out, typically the publisher's own,
                   which has already refetched.

        Returns:
            {'topic', 'subscribers_notified', 'subscribers_failed', 'failures'}

        This method NEVER raises for handler failures.
        """
        with self._lock:
            handlers = list(self._subscribers.get(topic, []))

        result = {
            "topic": topic,
            "subscribers_notified": 0,
            "subscribers_failed": 0,
            "failures": [],
        }

        for handler in handlers:
            if skip is not None and handler == skip:
                continue
            handler_name = _handler_name(handler)
            try:
                outcome = handler(topic)
                if inspect.isawaitable(outcome):
                    await outcome
                result["subscribers_notified"] += 1
            except Exception as exc:
                result["subscribers_failed"] += 1
                result["failures"].append({
                    "handler": handler_name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                })
                logger.error(
                    f"Refresh handler failed: {handler_name} for {topic}: {exc}",
                    exc_info=True,
                )

        logger.debug(
            f"Refresh published: {topic} — "
            f"{result['subscribers_notified']} notified, "
            f"{result['subscribers_failed']} failed"
        )
        return result
