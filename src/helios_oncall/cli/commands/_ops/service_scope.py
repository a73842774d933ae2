"""
Shared plumbing for CLI command wrappers.

Opens a unit of work against the configured database, builds the schedule
service over SQL repositories, parses instants from the command line, and
maps domain errors to stable error codes.

This module MUST NOT write to stdout. All IO stays in the command wrappers.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ....infra.db import create_schema, get_engine, get_sessionmaker
from ....infra.exceptions import (
    BindingNotFoundError,
    DegradedConfigError,
    GenerationCancelled,
    InvalidRangeError,
    PlanNotFoundError,
    TeamNotFoundError,
    ValidationError,
)
from ....infra.uow import session
from ....scheduling.clock import Clock
from ....services.schedule_service import OnCallScheduleService
from ....store.sql import SqlDefinitionRepository, SqlSliceRepository

_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (BindingNotFoundError, "BINDING_NOT_FOUND"),
    (PlanNotFoundError, "PLAN_NOT_FOUND"),
    (TeamNotFoundError, "TEAM_NOT_FOUND"),
    (InvalidRangeError, "INVALID_RANGE"),
    (ValidationError, "VALIDATION_ERROR"),
    (DegradedConfigError, "DEGRADED_CONFIG"),
    (GenerationCancelled, "CANCELLED"),
)


def error_code_for(exc: Exception) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "UNKNOWN_ERROR"


@contextlib.contextmanager
def db_scope(db_url: str | None = None) -> Generator[Session, None, None]:
    """Unit of work on the default database, or on ``db_url`` when given."""
    factory = get_sessionmaker(get_engine(db_url)) if db_url else None
    with session(factory) as db:
        create_schema(db.get_bind())
        yield db


@contextlib.contextmanager
def service_scope(
    db_url: str | None = None,
    clock: Clock | None = None,
) -> Generator[OnCallScheduleService, None, None]:
    with db_scope(db_url) as db:
        definitions = SqlDefinitionRepository(db)
        yield OnCallScheduleService(
            plans=definitions,
            teams=definitions,
            bindings=definitions,
            slices=SqlSliceRepository(db),
            clock=clock,
        )


def parse_instant(value: str, *, option: str = "instant") -> datetime:
    """Parse an ISO-8601 date or datetime. Values without an offset are UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {option} {value!r}: expected ISO-8601 (e.g. 2026-03-09T13:00:00Z)") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
