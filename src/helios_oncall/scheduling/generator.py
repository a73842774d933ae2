"""Schedule generator.

Walks every local calendar day of a UTC range, applies holidays and
overrides, builds the day's on-hours and off-hours intervals, resolves the
rotation for each role, converts to UTC through the plan's time zone, and
clips the result to the requested range.

Generation performs no I/O and keeps no state between calls; one generator
can be shared across threads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfoNotFoundError

from ..domain.models import (
    CustomerBinding,
    Plan,
    PlanOverride,
    ScheduleRole,
    ScheduleSlice,
    Team,
    slice_id_for,
)
from ..infra.exceptions import (
    DegradedConfigError,
    GenerationCancelled,
    InvalidRangeError,
    ValidationError,
)
from .clock import Clock, MasterClock, resolve_timezone
from .intervals import (
    LocalInterval,
    build_off_hours,
    build_on_hours,
    day_bounds,
    spill_over,
    subtract_intervals,
)
from .rotation import resolve_members

logger = logging.getLogger(__name__)


def resolve_override(plan: Plan, binding: CustomerBinding, local_date: date) -> PlanOverride | None:
    """Customer override for the date beats the plan override; last match wins in each."""
    customer = _last_for_date(binding.customer_overrides, local_date)
    if customer is not None:
        return customer
    return _last_for_date(plan.overrides, local_date)


def _last_for_date(overrides: tuple[PlanOverride, ...], local_date: date) -> PlanOverride | None:
    found = None
    for override in overrides:
        if override.date == local_date:
            found = override
    return found


def _local_dates(first: date, last: date) -> Iterator[date]:
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def _to_utc(local: datetime, tz: tzinfo) -> datetime:
    # fold=0: a wall time inside a DST gap or fold maps through the
    # pre-transition offset, which is what shortens or stretches the interval.
    return local.replace(tzinfo=tz).astimezone(timezone.utc)


def _require_aware(name: str, value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(f"{name} must be timezone-aware")
    return value.astimezone(timezone.utc)


class ScheduleGenerator:
    """Turns a plan plus a customer binding into sorted schedule slices.

    With ``strict=True`` configuration that would normally degrade (unknown
    time zone, override naming an unknown team) raises DegradedConfigError
    instead of falling back.
    """

    def __init__(self, clock: Clock | None = None, *, strict: bool = False) -> None:
        self._clock = clock or MasterClock()
        self._strict = strict

    def generate(
        self,
        plan: Plan,
        binding: CustomerBinding,
        on_hours_team: Team,
        off_hours_team: Team,
        backup_team: Team,
        from_utc: datetime,
        to_utc: datetime,
        *,
        teams: Mapping[str, Team] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[ScheduleSlice]:
        """Generate slices covering ``[from_utc, to_utc)``.

        ``teams`` supplies extra teams that overrides may reference; the
        three bound teams are always available.
        """
        from_utc = _require_aware("from_utc", from_utc)
        to_utc = _require_aware("to_utc", to_utc)
        if from_utc >= to_utc:
            raise InvalidRangeError(
                f"from_utc ({from_utc.isoformat()}) must be before to_utc ({to_utc.isoformat()})"
            )

        run = _GenerationRun(
            generator=self,
            plan=plan,
            binding=binding,
            bound={
                ScheduleRole.ON_HOURS: on_hours_team,
                ScheduleRole.OFF_HOURS: off_hours_team,
                ScheduleRole.BACKUP: backup_team,
            },
            teams=teams or {},
            tz=self._resolve_zone(plan),
            from_utc=from_utc,
            to_utc=to_utc,
            generated_at=self._clock.now_utc(),
        )
        slices = run.execute(cancel_event)
        logger.debug(
            "Generated %d slices for customer %s over [%s, %s)",
            len(slices),
            binding.customer_id,
            from_utc.isoformat(),
            to_utc.isoformat(),
        )
        return slices

    def _resolve_zone(self, plan: Plan) -> tzinfo:
        try:
            return resolve_timezone(plan.time_zone)
        except ZoneInfoNotFoundError:
            message = f"Plan {plan.id} has unknown time zone {plan.time_zone!r}; using UTC"
            if self._strict:
                raise DegradedConfigError(message) from None
            logger.warning(message)
            return timezone.utc

    def _degrade(self, message: str) -> None:
        if self._strict:
            raise DegradedConfigError(message)
        logger.warning(message)


class _GenerationRun:
    """State for a single generate() call."""

    def __init__(
        self,
        *,
        generator: ScheduleGenerator,
        plan: Plan,
        binding: CustomerBinding,
        bound: dict[ScheduleRole, Team],
        teams: Mapping[str, Team],
        tz: tzinfo,
        from_utc: datetime,
        to_utc: datetime,
        generated_at: datetime,
    ) -> None:
        self.generator = generator
        self.plan = plan
        self.binding = binding
        self.bound = bound
        self.team_map = dict(teams)
        self.team_map.update({team.id: team for team in bound.values()})
        self.tz = tz
        self.from_utc = from_utc
        self.to_utc = to_utc
        self.generated_at = generated_at
        self.holidays = frozenset(plan.holidays)
        self._reported: set[tuple[ScheduleRole, str]] = set()

    def execute(self, cancel_event: threading.Event | None) -> list[ScheduleSlice]:
        first = self.from_utc.astimezone(self.tz).date()
        last = self.to_utc.astimezone(self.tz).date()

        slices: list[ScheduleSlice] = []
        previous_on: list[LocalInterval] = []
        # Start a day early: an overnight window from the day before the range
        # still covers its first hours. Clipping drops everything else.
        for local_date in _local_dates(first - timedelta(days=1), last):
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelled(
                    f"Generation for customer {self.binding.customer_id} cancelled at {local_date.isoformat()}"
                )
            carried = spill_over(local_date, previous_on)
            override = resolve_override(self.plan, self.binding, local_date)
            if not self._is_active(local_date, override):
                previous_on = []
                continue

            on_hours = subtract_intervals(build_on_hours(local_date, self.plan.on_hours), carried)
            off_hours = build_off_hours(local_date, on_hours, carried)
            previous_on = on_hours
            slices.extend(self._slices_for_day(local_date, override, on_hours, off_hours))

        slices.sort(key=lambda s: (s.start_utc, s.role.value))
        return slices

    def _is_active(self, local_date: date, override: PlanOverride | None) -> bool:
        if not self.binding.is_effective_on(local_date):
            return False
        if local_date in self.holidays:
            return False
        if override is not None and override.skip:
            return False
        return True

    def _slices_for_day(
        self,
        local_date: date,
        override: PlanOverride | None,
        on_hours: list[LocalInterval],
        off_hours: list[LocalInterval],
    ) -> Iterator[ScheduleSlice]:
        rotation = self.plan.rotation
        backup_team = self._team_for(ScheduleRole.BACKUP, override)
        backup_members = resolve_members(backup_team, rotation, local_date)

        for role, intervals in (
            (ScheduleRole.ON_HOURS, on_hours),
            (ScheduleRole.OFF_HOURS, off_hours),
        ):
            if not intervals:
                continue
            team = self._team_for(role, override)
            members = resolve_members(team, rotation, local_date)
            if not members and backup_members:
                team, members = backup_team, backup_members
            for interval in intervals:
                item = self._make_slice(role, team, members, interval)
                if item is not None:
                    yield item

        item = self._make_slice(ScheduleRole.BACKUP, backup_team, backup_members, day_bounds(local_date))
        if item is not None:
            yield item

    def _team_for(self, role: ScheduleRole, override: PlanOverride | None) -> Team:
        fallback = self.bound[role]
        requested = override.team_id_for(role) if override is not None else None
        if not requested:
            requested = self.binding.team_id_for(role)
        team = self.team_map.get(requested)
        if team is not None:
            return team
        if (role, requested) not in self._reported:
            self._reported.add((role, requested))
            self.generator._degrade(
                f"Customer {self.binding.customer_id}: {role.value} team {requested!r} "
                f"is unknown; using bound team {fallback.id!r}"
            )
        return fallback

    def _make_slice(
        self,
        role: ScheduleRole,
        team: Team,
        members: list[str],
        interval: LocalInterval,
    ) -> ScheduleSlice | None:
        start = max(_to_utc(interval.start, self.tz), self.from_utc)
        end = min(_to_utc(interval.end, self.tz), self.to_utc)
        if end <= start:
            return None
        return ScheduleSlice(
            id=slice_id_for(self.binding.customer_id, role, start),
            customer_id=self.binding.customer_id,
            plan_id=self.plan.id,
            plan_version=self.plan.version,
            role=role,
            team_id=team.id,
            member_ids=tuple(members),
            start_utc=start,
            end_utc=end,
            generated_at_utc=self.generated_at,
        )
