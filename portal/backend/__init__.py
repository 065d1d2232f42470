"""
MORIS Backend — Public API
============================
Reference implementation of the collaborator ports.
"""

from portal.backend.memory import OPERATIONS, InMemoryPortalBackend

__all__ = [
    "InMemoryPortalBackend",
    "OPERATIONS",
]
