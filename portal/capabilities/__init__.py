"""
MORIS Capabilities — Public API
=================================
Per (user, project) capability gating.
"""

from portal.capabilities.models import AccessContext, CapabilityStatus
from portal.capabilities.resolver import CapabilityResolver, CapabilitySource

__all__ = [
    "AccessContext",
    "CapabilityStatus",
    "CapabilityResolver",
    "CapabilitySource",
]
