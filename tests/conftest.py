"""Shared fixtures: a New York business-hours plan, three teams, one customer."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from helios_oncall.domain.models import (
    CustomerBinding,
    DailyWindow,
    Plan,
    RotationCadence,
    RotationDefaults,
    RotationMode,
    Team,
    TeamMember,
)
from helios_oncall.infra.db import create_schema, get_engine, get_sessionmaker
from helios_oncall.scheduling.clock import ControllableMasterClock
from helios_oncall.services.schedule_service import OnCallScheduleService
from helios_oncall.store.memory import InMemoryDefinitionStore, InMemorySliceStore

ANCHOR = date(2026, 1, 5)  # a Monday
CUSTOMER = "contoso"


def make_team(team_id: str, *user_ids: str, **kwargs) -> Team:
    """Team whose members rotate in the order given."""
    members = tuple(TeamMember(user_id=u, order=i) for i, u in enumerate(user_ids))
    return Team(id=team_id, name=team_id.title(), members=members, **kwargs)


def business_hours(start: time = time(9), end: time = time(17)) -> tuple[DailyWindow, ...]:
    """Monday to Friday windows."""
    return tuple(DailyWindow(weekday=d, local_start=start, local_end=end) for d in range(5))


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def team_a() -> Team:
    return make_team("team-a", "alice", "bob", "carol")


@pytest.fixture
def team_b() -> Team:
    return make_team("team-b", "dave", "erin")


@pytest.fixture
def team_c() -> Team:
    return make_team("team-c", "frank")


@pytest.fixture
def ny_plan() -> Plan:
    return Plan(
        id="plan-ny",
        name="New York business hours",
        time_zone="America/New_York",
        on_hours=business_hours(),
        rotation=RotationDefaults(
            mode=RotationMode.ROLLING_INDIVIDUAL,
            cadence=RotationCadence.DAILY,
            anchor_date=ANCHOR,
            anchor_index=0,
        ),
    )


@pytest.fixture
def binding() -> CustomerBinding:
    return CustomerBinding(
        customer_id=CUSTOMER,
        plan_id="plan-ny",
        on_hours_team_id="team-a",
        off_hours_team_id="team-b",
        backup_team_id="team-c",
    )


@pytest.fixture
def clock() -> ControllableMasterClock:
    # Monday 2026-06-01 08:00 EDT
    return ControllableMasterClock(epoch=utc(2026, 6, 1, 12))


@pytest.fixture
def definitions(ny_plan, team_a, team_b, team_c, binding) -> InMemoryDefinitionStore:
    return InMemoryDefinitionStore(
        plans=[ny_plan],
        teams=[team_a, team_b, team_c],
        bindings=[binding],
    )


@pytest.fixture
def slice_store() -> InMemorySliceStore:
    return InMemorySliceStore()


@pytest.fixture
def service(definitions, slice_store, clock) -> OnCallScheduleService:
    return OnCallScheduleService(
        plans=definitions,
        teams=definitions,
        bindings=definitions,
        slices=slice_store,
        clock=clock,
    )


@pytest.fixture
def engine():
    """In-memory SQLite shared across sessions (StaticPool)."""
    eng = get_engine("sqlite://")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    db = get_sessionmaker(engine)()
    try:
        yield db
    finally:
        db.close()
