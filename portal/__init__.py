"""
MORIS Portal — Event Engine
=============================
Every mutation to a project is an event. Nothing writes a project field
directly.

Sub-packages:
    events        — closed event taxonomy, payloads, request builders
    capabilities  — per (user, project) capability gating
    policy        — notify / approval policy model and resolution
    workflow      — pending → approved | rejected state machine
    session       — per-project view state, refresh bus, polling
    backend       — in-memory reference implementation of the server ports

The projection engine lives in the top-level ``projections`` package.
"""
