"""
MORIS Capabilities — Resolver
===============================
Owns the AccessContext for the project a user is currently looking at.

Rules:
- bind(project_id) re-derives immediately: the context becomes LOADING
  for the new project before any fetch completes.
- load() and refresh() always ask the source. Nothing is cached, so a
  role edit is visible on the next refresh.
- A response for a superseded request (re-bound or re-requested) is
  discarded. Project A's capabilities never land in project B's context.
- A failed fetch or an unreadable response yields an ERROR context
  that denies everything.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Optional, Protocol

from portal.capabilities.models import AccessContext
from portal.config import get_engine_settings
from portal.errors import PortalError

logger = logging.getLogger("moris.capabilities")


class CapabilitySource(Protocol):
    """The getAllowedEventTypes collaborator operation."""

    async def get_allowed_event_types(
        self, user_id: str, project_id: str
    ) -> Iterable[str]:
        ...  # pragma: no cover


class CapabilityResolver:
    """Per-user resolver; re-bound on every project navigation."""

    def __init__(
        self,
        source: CapabilitySource,
        user_id: str,
        approval_capability: Optional[str] = None,
    ):
        if not user_id:
            raise ValueError("user_id must be non-empty.")
        if approval_capability is None:
            approval_capability = get_engine_settings().approval_capability
        self._source = source
        self._user_id = user_id
        self._approval_capability = approval_capability
        self._project_id: Optional[str] = None
        self._context: Optional[AccessContext] = None
        self._request_seq = 0

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    @property
    def current(self) -> AccessContext:
        if self._context is None:
            raise RuntimeError("CapabilityResolver is not bound to a project.")
        return self._context

    def bind(self, project_id: str) -> AccessContext:
        """Switch to another project. Any in-flight fetch is superseded."""
        if not project_id:
            raise ValueError("project_id must be non-empty.")
        if project_id == self._project_id and self._context is not None:
            return self._context
        self._request_seq += 1
        self._project_id = project_id
        self._context = AccessContext.loading(
            project_id, approval_capability=self._approval_capability
        )
        logger.debug(f"Capabilities re-derived for project {project_id}")
        return self._context

    async def load(self) -> AccessContext:
        """Fetch the capability set for the bound project."""
        project_id = self._project_id
        if project_id is None:
            raise RuntimeError("CapabilityResolver is not bound to a project.")

        self._request_seq += 1
        token = self._request_seq

        try:
            allowed: FrozenSet[str] = frozenset(
                await self._source.get_allowed_event_types(self._user_id, project_id)
            )
        except Exception as exc:
            if token != self._request_seq:
                logger.debug(
                    f"Discarded stale capability failure for project {project_id}"
                )
                return self.current
            if isinstance(exc, PortalError):
                logger.warning(
                    f"Capability fetch failed for user {self._user_id} "
                    f"on project {project_id}: {exc}"
                )
            else:
                logger.error(
                    f"Unreadable capability response for user {self._user_id} "
                    f"on project {project_id}: {exc}",
                    exc_info=True,
                )
            self._context = AccessContext.failed(
                project_id, str(exc), approval_capability=self._approval_capability
            )
            return self._context

        if token != self._request_seq:
            logger.debug(f"Discarded stale capability response for project {project_id}")
            return self.current

        self._context = AccessContext.ready(
            project_id, allowed, approval_capability=self._approval_capability
        )
        logger.debug(
            f"Capabilities ready for project {project_id}: {len(allowed)} event types"
        )
        return self._context

    async def refresh(self) -> AccessContext:
        """Explicit refetch after a permission-affecting change."""
        return await self.load()

    def has_access(self, event_type) -> bool:
        if self._context is None:
            return False
        return self._context.has_access(event_type)
