"""On-call domain values.

Every type here is frozen. Edits produce a new value through
``dataclasses.replace`` so a generated slice can always be traced back to
the exact plan revision (``Plan.version``) that produced it.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

# Namespace for deterministic slice ids.
SLICE_NAMESPACE = uuid.UUID("6f1c3f0e-5a52-4c1e-9d7c-3b0f2a8e4d11")


class RotationMode(str, Enum):
    ROLLING_INDIVIDUAL = "RollingIndividual"
    WHOLE_TEAM = "WholeTeam"


class RotationCadence(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"


class ScheduleRole(str, Enum):
    ON_HOURS = "OnHours"
    OFF_HOURS = "OffHours"
    BACKUP = "Backup"


PRIMARY_ROLES = frozenset({ScheduleRole.ON_HOURS, ScheduleRole.OFF_HOURS})


@dataclass(frozen=True)
class DailyWindow:
    """Local-time on-hours window for one weekday (Monday=0 … Sunday=6).

    ``local_end <= local_start`` means the window runs into the next day.
    """

    weekday: int
    local_start: time
    local_end: time

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be in 0..6, got {self.weekday}")

    @property
    def is_overnight(self) -> bool:
        return self.local_end <= self.local_start


@dataclass(frozen=True)
class RotationDefaults:
    mode: RotationMode = RotationMode.ROLLING_INDIVIDUAL
    cadence: RotationCadence = RotationCadence.DAILY
    anchor_date: date | None = None
    anchor_index: int = 0


@dataclass(frozen=True)
class EscalationPolicy:
    """Passed through to the escalation collaborator; not used for generation."""

    ack_timeout: timedelta = timedelta(minutes=5)
    max_retries: int = 3
    retry_delay: timedelta = timedelta(minutes=5)


@dataclass(frozen=True)
class PlanOverride:
    """Date-specific team replacements, or a skip of the whole date."""

    date: date
    on_hours_team_id: str | None = None
    off_hours_team_id: str | None = None
    backup_team_id: str | None = None
    skip: bool | None = None

    def team_id_for(self, role: ScheduleRole) -> str | None:
        if role is ScheduleRole.ON_HOURS:
            return self.on_hours_team_id
        if role is ScheduleRole.OFF_HOURS:
            return self.off_hours_team_id
        return self.backup_team_id


@dataclass(frozen=True)
class Plan:
    """Reusable on-call plan. Customers bind to it and pick the teams."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    time_zone: str = "UTC"
    on_hours: tuple[DailyWindow, ...] = ()
    include_weekends: bool = False
    holidays: tuple[date, ...] = ()
    rotation: RotationDefaults = RotationDefaults()
    escalation: EscalationPolicy = EscalationPolicy()
    overrides: tuple[PlanOverride, ...] = ()
    version: str = "v1"


@dataclass(frozen=True)
class TeamMember:
    user_id: str
    enabled: bool = True
    order: int = 0


@dataclass(frozen=True)
class Team:
    """Reusable roster. Team-level rotation settings beat the plan's."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    enabled: bool = True
    mode_override: RotationMode | None = None
    cadence_override: RotationCadence | None = None
    rotation_interval_days: int | None = None
    members: tuple[TeamMember, ...] = ()


@dataclass(frozen=True)
class CustomerBinding:
    """Binds one customer to a plan and the team filling each role."""

    customer_id: str
    plan_id: str
    on_hours_team_id: str
    off_hours_team_id: str
    backup_team_id: str
    effective_from: date | None = None
    effective_through: date | None = None
    customer_overrides: tuple[PlanOverride, ...] = ()
    id: str = ""

    def team_id_for(self, role: ScheduleRole) -> str:
        if role is ScheduleRole.ON_HOURS:
            return self.on_hours_team_id
        if role is ScheduleRole.OFF_HOURS:
            return self.off_hours_team_id
        return self.backup_team_id

    def is_effective_on(self, local_date: date) -> bool:
        if self.effective_from is not None and local_date < self.effective_from:
            return False
        if self.effective_through is not None and local_date > self.effective_through:
            return False
        return True


def slice_id_for(customer_id: str, role: ScheduleRole, start_utc: datetime) -> str:
    """Stable id: regenerating the same slice overwrites instead of duplicating."""
    key = f"{customer_id}|{role.value}|{start_utc.isoformat()}"
    return uuid.uuid5(SLICE_NAMESPACE, key).hex


@dataclass(frozen=True)
class ScheduleSlice:
    """Materialized interval of responsibility for one role, ``[start_utc, end_utc)``."""

    id: str
    customer_id: str
    plan_id: str
    plan_version: str
    role: ScheduleRole
    team_id: str
    member_ids: tuple[str, ...]
    start_utc: datetime
    end_utc: datetime
    generated_at_utc: datetime

    def __post_init__(self) -> None:
        if self.end_utc <= self.start_utc:
            raise ValueError(
                f"slice end_utc {self.end_utc.isoformat()} must be after "
                f"start_utc {self.start_utc.isoformat()}"
            )

    def contains(self, instant: datetime) -> bool:
        return self.start_utc <= instant < self.end_utc

    def overlaps(self, start_utc: datetime, end_utc: datetime) -> bool:
        return self.start_utc < end_utc and self.end_utc > start_utc
