"""Service layer: generation orchestration, coverage queries, horizon upkeep."""

from .definitions import LoadResult, load_definitions, load_document
from .horizon import ExtensionReport, ScheduleHorizonExtender
from .schedule_service import (
    Coverage,
    GenerationOutcome,
    OnCallScheduleService,
    OnCallTargets,
    PlanValidationReport,
    ScheduleView,
    select_coverage,
)

__all__ = [
    "Coverage",
    "ExtensionReport",
    "GenerationOutcome",
    "LoadResult",
    "OnCallScheduleService",
    "OnCallTargets",
    "PlanValidationReport",
    "ScheduleHorizonExtender",
    "ScheduleView",
    "load_definitions",
    "load_document",
    "select_coverage",
]
