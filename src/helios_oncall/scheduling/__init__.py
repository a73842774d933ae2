"""
Schedule generation: rotation math, daily interval building, and the
generator that turns plans and bindings into UTC schedule slices.

Everything in this package is pure computation over in-memory values.
"""

from .generator import ScheduleGenerator
from .intervals import LocalInterval, build_off_hours, build_on_hours
from .rotation import enabled_members, resolve_members

__all__ = [
    "LocalInterval",
    "ScheduleGenerator",
    "build_off_hours",
    "build_on_hours",
    "enabled_members",
    "resolve_members",
]
