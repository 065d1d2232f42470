"""
MORIS Time — Public API
=========================
Injectable clock. Engine logic never reads the wall clock directly.
"""

from portal.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    set_default_clock,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
]
