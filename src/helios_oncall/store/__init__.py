"""
Persistence for on-call definitions and schedule slices.

protocols.py describes what the engine needs; memory.py and sql.py are the
two implementations.
"""

from .memory import InMemoryDefinitionStore, InMemorySliceStore
from .protocols import (
    BindingRepository,
    PlanRepository,
    SliceRepository,
    TeamRepository,
)

__all__ = [
    "BindingRepository",
    "InMemoryDefinitionStore",
    "InMemorySliceStore",
    "PlanRepository",
    "SliceRepository",
    "TeamRepository",
]
