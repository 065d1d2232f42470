"""
MORIS Policy — Recipient Resolution
=====================================
Turns a policy's Recipients into a flat set of user ids.

The directory is the server's knowledge of who holds which role. A
failure resolving one recipient kind is logged and skipped; it never
aborts resolution of the others.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, Optional, Protocol, Set, Tuple

from portal.policy.models import Recipients

logger = logging.getLogger("moris.policy")


class RecipientDirectory(Protocol):
    def resolve_users(self, person_ids: Iterable[str]) -> Iterable[str]:
        """Map person ids to user ids."""
        ...  # pragma: no cover

    def project_role_holders(self, role_id: str, project_id: str) -> Iterable[str]:
        ...  # pragma: no cover

    def org_role_holders(self, role_id: str, org_node_id: Optional[str]) -> Iterable[str]:
        ...  # pragma: no cover

    def dynamic_recipients(
        self, kind: str, project_id: str, org_node_id: Optional[str]
    ) -> Iterable[str]:
        ...  # pragma: no cover


class InMemoryRecipientDirectory:
    """
    Deterministic in-memory directory used for bootstrap/tests.

    Person ids map to themselves unless an explicit mapping is given.
    """

    def __init__(
        self,
        person_users: Optional[Dict[str, str]] = None,
        project_roles: Optional[Dict[Tuple[str, str], Iterable[str]]] = None,
        org_roles: Optional[Dict[Tuple[str, str], Iterable[str]]] = None,
        dynamic: Optional[Dict[Tuple[str, str], Iterable[str]]] = None,
    ):
        self._person_users = dict(person_users or {})
        self._project_roles = {k: tuple(v) for k, v in (project_roles or {}).items()}
        self._org_roles = {k: tuple(v) for k, v in (org_roles or {}).items()}
        self._dynamic = {k: tuple(v) for k, v in (dynamic or {}).items()}

    def assign_project_role(self, project_id: str, role_id: str, user_id: str) -> None:
        holders = self._project_roles.get((project_id, role_id), ())
        if user_id not in holders:
            self._project_roles[(project_id, role_id)] = holders + (user_id,)

    def assign_org_role(self, org_node_id: str, role_id: str, user_id: str) -> None:
        holders = self._org_roles.get((org_node_id, role_id), ())
        if user_id not in holders:
            self._org_roles[(org_node_id, role_id)] = holders + (user_id,)

    def set_dynamic(self, project_id: str, kind: str, user_ids: Iterable[str]) -> None:
        self._dynamic[(project_id, kind)] = tuple(user_ids)

    def resolve_users(self, person_ids: Iterable[str]) -> Iterable[str]:
        return [self._person_users.get(pid, pid) for pid in person_ids]

    def project_role_holders(self, role_id: str, project_id: str) -> Iterable[str]:
        return self._project_roles.get((project_id, role_id), ())

    def org_role_holders(self, role_id: str, org_node_id: Optional[str]) -> Iterable[str]:
        if org_node_id is None:
            return ()
        return self._org_roles.get((org_node_id, role_id), ())

    def dynamic_recipients(
        self, kind: str, project_id: str, org_node_id: Optional[str]
    ) -> Iterable[str]:
        return self._dynamic.get((project_id, kind), ())


def resolve_recipients(
    recipients: Recipients,
    directory: RecipientDirectory,
    project_id: str,
    org_node_id: Optional[str] = None,
) -> FrozenSet[str]:
    """Union of all recipient kinds as user ids."""
    user_ids: Set[str] = set()

    if recipients.users:
        try:
            user_ids.update(directory.resolve_users(recipients.users))
        except Exception as exc:
            logger.warning(f"Error resolving user ids {list(recipients.users)}: {exc}")

    for role_id in recipients.project_roles:
        try:
            user_ids.update(directory.project_role_holders(role_id, project_id))
        except Exception as exc:
            logger.warning(f"Error resolving project role {role_id}: {exc}")

    for role_id in recipients.org_roles:
        try:
            user_ids.update(directory.org_role_holders(role_id, org_node_id))
        except Exception as exc:
            logger.warning(f"Error resolving org role {role_id}: {exc}")

    for kind in recipients.dynamic:
        try:
            user_ids.update(directory.dynamic_recipients(kind, project_id, org_node_id))
        except Exception as exc:
            logger.warning(f"Error resolving dynamic recipient {kind}: {exc}")

    return frozenset(uid for uid in user_ids if uid)
