"""
MORIS Portal — Action Outcomes
================================
User actions (submit, approve, reject) report their result as a frozen
outcome value instead of raising. A denied or conflicting action is an
expected situation in a multi-user portal, not a crash.

A RejectionReason is deterministic (same input → same reason), machine
readable through its code and human readable through its message.
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Why an action did not go through.

    Fields:
        code:      ReasonCode constant.
        message:   Human-readable explanation.
        retryable: True when the same action may succeed if repeated.
    """

    code: str
    message: str
    retryable: bool = False

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")
        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


# ══════════════════════════════════════════════════════════════
# REASON CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known reason codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Capability gating ─────────────────────────────────────
    CAPABILITY_DENIED = "CAPABILITY_DENIED"
    CAPABILITIES_NOT_READY = "CAPABILITIES_NOT_READY"

    # ── View state ────────────────────────────────────────────
    PROJECT_MISMATCH = "PROJECT_MISMATCH"
    VIEW_CLOSED = "VIEW_CLOSED"
    EVENT_NOT_PENDING = "EVENT_NOT_PENDING"

    # ── Collaborator ──────────────────────────────────────────
    CONFLICT = "CONFLICT"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"
    NOT_FOUND = "NOT_FOUND"
    BACKEND_FAILURE = "BACKEND_FAILURE"
