"""
MORIS Capabilities — Tests
============================
AccessContext gating and the per-project CapabilityResolver.
"""

from __future__ import annotations

import asyncio

import pytest

from portal.capabilities import (
    AccessContext,
    CapabilityResolver,
    CapabilityStatus,
)
from portal.errors import TransportError
from portal.events import EventType


USER_ID = "user-1"
APPROVE = "project.event.approve"


class FakeSource:
    """Capability source keyed by project; optionally gated by an event."""

    def __init__(self, grants=None):
        self.grants = dict(grants or {})
        self.calls = []
        self.fail = False
        self.gates = {}

    async def get_allowed_event_types(self, user_id, project_id):
        self.calls.append((user_id, project_id))
        gate = self.gates.get(project_id)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise TransportError("get_allowed_event_types", "offline")
        return list(self.grants.get(project_id, ()))


# ══════════════════════════════════════════════════════════════
# ACCESS CONTEXT
# ══════════════════════════════════════════════════════════════

class TestAccessContext:
    def test_loading_denies_everything(self):
        ctx = AccessContext.loading("proj-A")
        assert ctx.status is CapabilityStatus.LOADING
        assert ctx.is_read_only
        assert not ctx.has_access(EventType.TITLE_CHANGED)

    def test_error_denies_everything(self):
        ctx = AccessContext.failed("proj-A", "boom", approval_capability=APPROVE)
        assert ctx.error == "boom"
        assert not ctx.has_access(EventType.TITLE_CHANGED)
        assert not ctx.can_resolve(EventType.TITLE_CHANGED)

    def test_ready_checks_membership(self):
        ctx = AccessContext.ready("proj-A", [EventType.TITLE_CHANGED, "project.product_added"])
        assert ctx.is_ready
        assert ctx.has_access(EventType.TITLE_CHANGED)
        assert ctx.has_access("project.title_changed")
        assert ctx.has_access(EventType.PRODUCT_ADDED)
        assert not ctx.has_access(EventType.PRODUCT_REMOVED)

    def test_non_ready_context_cannot_carry_capabilities(self):
        with pytest.raises(ValueError, match="cannot carry capabilities"):
            AccessContext(
                project_id="proj-A",
                capabilities=frozenset({"project.title_changed"}),
                status=CapabilityStatus.LOADING,
            )

    def test_project_id_required(self):
        with pytest.raises(ValueError, match="project_id"):
            AccessContext.loading("")

    def test_can_resolve_by_type_or_approval_capability(self):
        by_type = AccessContext.ready("proj-A", ["project.product_added"], APPROVE)
        assert by_type.can_resolve(EventType.PRODUCT_ADDED)
        assert not by_type.can_resolve(EventType.TITLE_CHANGED)

        approver = AccessContext.ready("proj-A", [APPROVE], APPROVE)
        assert approver.can_resolve(EventType.TITLE_CHANGED)
        assert approver.can_resolve("project.future_type")


# ══════════════════════════════════════════════════════════════
# RESOLVER
# ══════════════════════════════════════════════════════════════

class TestCapabilityResolver:
    def test_unbound_resolver_has_no_context(self):
        resolver = CapabilityResolver(FakeSource(), USER_ID, approval_capability=APPROVE)
        assert not resolver.has_access(EventType.TITLE_CHANGED)
        with pytest.raises(RuntimeError, match="not bound"):
            _ = resolver.current

    def test_user_id_required(self):
        with pytest.raises(ValueError, match="user_id"):
            CapabilityResolver(FakeSource(), "", approval_capability=APPROVE)

    def test_approval_capability_defaults_to_settings(self, settings):
        settings.EVENT_ENGINE = {"APPROVAL_CAPABILITY": "custom.approve"}
        resolver = CapabilityResolver(FakeSource(), USER_ID)
        ctx = resolver.bind("proj-A")
        assert ctx.approval_capability == "custom.approve"

    def test_bind_is_loading_until_loaded(self):
        resolver = CapabilityResolver(FakeSource(), USER_ID, approval_capability=APPROVE)
        ctx = resolver.bind("proj-A")
        assert ctx.status is CapabilityStatus.LOADING
        assert resolver.project_id == "proj-A"

    def test_rebinding_same_project_keeps_context(self):
        resolver = CapabilityResolver(FakeSource(), USER_ID, approval_capability=APPROVE)
        first = resolver.bind("proj-A")
        assert resolver.bind("proj-A") is first

    @pytest.mark.asyncio
    async def test_load_yields_ready_context(self):
        source = FakeSource({"proj-A": ["project.title_changed"]})
        resolver = CapabilityResolver(source, USER_ID, approval_capability=APPROVE)
        resolver.bind("proj-A")
        ctx = await resolver.load()
        assert ctx.is_ready
        assert resolver.has_access(EventType.TITLE_CHANGED)
        assert source.calls == [(USER_ID, "proj-A")]

    @pytest.mark.asyncio
    async def test_navigation_never_leaks_previous_project(self):
        source = FakeSource({
            "proj-A": ["project.title_changed"],
            "proj-B": [],
        })
        resolver = CapabilityResolver(source, USER_ID, approval_capability=APPROVE)
        resolver.bind("proj-A")
        await resolver.load()
        assert resolver.has_access(EventType.TITLE_CHANGED)

        resolver.bind("proj-B")
        assert not resolver.has_access(EventType.TITLE_CHANGED)
        await resolver.load()
        assert resolver.current.project_id == "proj-B"
        assert not resolver.has_access(EventType.TITLE_CHANGED)

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self):
        source = FakeSource({
            "proj-A": ["project.title_changed"],
            "proj-B": ["project.product_added"],
        })
        gate = asyncio.Event()
        source.gates["proj-A"] = gate
        resolver = CapabilityResolver(source, USER_ID, approval_capability=APPROVE)

        resolver.bind("proj-A")
        slow = asyncio.ensure_future(resolver.load())
        await asyncio.sleep(0)

        resolver.bind("proj-B")
        await resolver.load()
        gate.set()
        await slow

        ctx = resolver.current
        assert ctx.project_id == "proj-B"
        assert ctx.has_access(EventType.PRODUCT_ADDED)
        assert not ctx.has_access(EventType.TITLE_CHANGED)

    @pytest.mark.asyncio
    async def test_fetch_failure_yields_error_context(self):
        source = FakeSource({"proj-A": ["project.title_changed"]})
        source.fail = True
        resolver = CapabilityResolver(source, USER_ID, approval_capability=APPROVE)
        resolver.bind("proj-A")
        ctx = await resolver.load()
        assert ctx.status is CapabilityStatus.ERROR
        assert "offline" in ctx.error
        assert not resolver.has_access(EventType.TITLE_CHANGED)

    @pytest.mark.asyncio
    async def test_unreadable_response_yields_error_context(self):
        class EmptySource:
            async def get_allowed_event_types(self, user_id, project_id):
                return None

        resolver = CapabilityResolver(EmptySource(), USER_ID, approval_capability=APPROVE)
        resolver.bind("proj-A")
        ctx = await resolver.load()
        assert ctx.status is CapabilityStatus.ERROR
        assert ctx.error
        assert not resolver.has_access(EventType.TITLE_CHANGED)
        assert not ctx.can_resolve(EventType.TITLE_CHANGED)

    @pytest.mark.asyncio
    async def test_refresh_picks_up_role_changes(self):
        source = FakeSource({"proj-A": []})
        resolver = CapabilityResolver(source, USER_ID, approval_capability=APPROVE)
        resolver.bind("proj-A")
        await resolver.load()
        assert not resolver.has_access(EventType.PRODUCT_ADDED)

        source.grants["proj-A"] = ["project.product_added"]
        await resolver.refresh()
        assert resolver.has_access(EventType.PRODUCT_ADDED)
        assert len(source.calls) == 2

    @pytest.mark.asyncio
    async def test_load_requires_binding(self):
        resolver = CapabilityResolver(FakeSource(), USER_ID, approval_capability=APPROVE)
        with pytest.raises(RuntimeError, match="not bound"):
            await resolver.load()
