"""
MORIS Session — Project Session
=================================
Navigation host for one user. Holds at most one open ProjectView.

Opening another project closes the previous view first and re-binds
the capability resolver, so nothing from project A can be merged into
project B's state.
"""

from __future__ import annotations

import logging
from typing import Optional

from portal.capabilities.resolver import CapabilityResolver
from portal.ports import PortalBackend
from portal.session.refresh import RefreshBus
from portal.session.view import ProjectView

logger = logging.getLogger("moris.session")


class ProjectSession:
    def __init__(
        self,
        backend: PortalBackend,
        user_id: str,
        bus: Optional[RefreshBus] = None,
        resolver: Optional[CapabilityResolver] = None,
    ):
        self._backend = backend
        self._bus = bus or RefreshBus()
        self._resolver = resolver or CapabilityResolver(backend, user_id)
        self._view: Optional[ProjectView] = None

    @property
    def bus(self) -> RefreshBus:
        return self._bus

    @property
    def resolver(self) -> CapabilityResolver:
        return self._resolver

    @property
    def current(self) -> Optional[ProjectView]:
        return self._view

    async def open(self, project_id: str) -> ProjectView:
        if self._view is not None:
            logger.debug(f"Leaving project {self._view.project_id}")
            self._view.close()
        view = ProjectView(project_id, self._backend, self._resolver, self._bus)
        self._view = view
        await view.load()
        return view

    def close(self) -> None:
        if self._view is not None:
            self._view.close()
            self._view = None
