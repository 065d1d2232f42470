"""
MORIS Capabilities — Access Context
=====================================
Explicit, per-project capability state.

An AccessContext is the only thing UI actions consult before offering
a mutation. It is constructed for exactly one project id and replaced
(never mutated) when that project's capabilities are refetched or when
the user navigates to another project.

Doctrine: LOADING and ERROR deny everything. There is no "allow all".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional


class CapabilityStatus(Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _token(event_type: Any) -> str:
    return getattr(event_type, "value", event_type) if event_type is not None else ""


@dataclass(frozen=True)
class AccessContext:
    """
    Capability set for one (user, project) pair.

    Fields:
        project_id:          Owning project. Checks never leak across projects.
        capabilities:        Event-type strings the user may originate.
        status:              LOADING | READY | ERROR.
        error:               Failure message when status is ERROR.
        approval_capability: Dedicated capability that allows resolving
                             any pending event regardless of its type.
    """

    project_id: str
    capabilities: FrozenSet[str] = frozenset()
    status: CapabilityStatus = CapabilityStatus.LOADING
    error: Optional[str] = None
    approval_capability: Optional[str] = None

    def __post_init__(self):
        if not self.project_id or not isinstance(self.project_id, str):
            raise ValueError("project_id must be a non-empty string.")
        if not isinstance(self.status, CapabilityStatus):
            raise ValueError("status must be a CapabilityStatus.")
        normalized = frozenset(_token(c) for c in self.capabilities if c)
        object.__setattr__(self, "capabilities", normalized)
        if self.status is not CapabilityStatus.READY and normalized:
            raise ValueError(
                f"A {self.status.value} context cannot carry capabilities."
            )

    # ── constructors ──────────────────────────────────────────

    @classmethod
    def loading(
        cls, project_id: str, approval_capability: Optional[str] = None
    ) -> "AccessContext":
        return cls(
            project_id=project_id,
            status=CapabilityStatus.LOADING,
            approval_capability=approval_capability,
        )

    @classmethod
    def ready(
        cls,
        project_id: str,
        capabilities: Iterable[Any],
        approval_capability: Optional[str] = None,
    ) -> "AccessContext":
        return cls(
            project_id=project_id,
            capabilities=frozenset(capabilities),
            status=CapabilityStatus.READY,
            approval_capability=approval_capability,
        )

    @classmethod
    def failed(
        cls,
        project_id: str,
        error: str,
        approval_capability: Optional[str] = None,
    ) -> "AccessContext":
        return cls(
            project_id=project_id,
            status=CapabilityStatus.ERROR,
            error=error or "capability fetch failed",
            approval_capability=approval_capability,
        )

    # ── checks ────────────────────────────────────────────────

    @property
    def is_ready(self) -> bool:
        return self.status is CapabilityStatus.READY

    @property
    def is_read_only(self) -> bool:
        """LOADING and ERROR surface a degraded, read-only view."""
        return self.status is not CapabilityStatus.READY

    def has_access(self, event_type: Any) -> bool:
        """Synchronous membership test. False unless READY."""
        if self.status is not CapabilityStatus.READY:
            return False
        return _token(event_type) in self.capabilities

    def can_resolve(self, event_type: Any) -> bool:
        """
        May the user approve or reject a pending event of this type?

        Either the event type itself or the dedicated approval capability
        grants it.
        """
        if self.has_access(event_type):
            return True
        if self.approval_capability:
            return self.has_access(self.approval_capability)
        return False
