"""
MORIS Session — Poller
========================
Timed refresh for the pending-event and notification lists, alongside
the explicit refresh bus. One asyncio task per poller.

A failing tick is logged and polling continues.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from portal.config import EngineSettings, get_engine_settings

logger = logging.getLogger("moris.session")


class Poller:
    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        name: str = "poller",
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}.")
        self._callback = callback
        self._interval = interval_seconds
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.failures = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """Run the callback once. Never raises."""
        self.ticks += 1
        try:
            await self._callback()
            return True
        except Exception as exc:
            self.failures += 1
            logger.error(f"Poller '{self._name}' tick failed: {exc}", exc_info=True)
            return False

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.tick()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)
        logger.debug(f"Poller '{self._name}' started every {self._interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Poller '{self._name}' stopped")


def pending_events_poller(view, settings: Optional[EngineSettings] = None) -> Poller:
    settings = settings or get_engine_settings()
    return Poller(
        view.refresh_pending,
        settings.pending_events_poll_seconds,
        name=f"pending:{view.project_id}",
    )


def notifications_poller(feed, settings: Optional[EngineSettings] = None) -> Poller:
    settings = settings or get_engine_settings()
    return Poller(
        feed.refresh,
        settings.notifications_poll_seconds,
        name="notifications",
    )
