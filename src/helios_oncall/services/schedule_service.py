"""On-call schedule service.

Orchestrates generation runs against the stores (regenerate, extend) and
answers coverage questions from the persisted slices.

Regeneration for one customer is serialized through a per-customer lock
and always deletes before it writes: a crash in between leaves a gap in
future coverage (detectable, safe to re-run), never overlapping slices.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..domain.models import (
    PRIMARY_ROLES,
    CustomerBinding,
    EscalationPolicy,
    Plan,
    ScheduleRole,
    ScheduleSlice,
    Team,
)
from ..infra.exceptions import (
    BindingNotFoundError,
    DegradedConfigError,
    InvalidRangeError,
    PlanNotFoundError,
    TeamNotFoundError,
    ValidationError,
)
from ..infra.logging import get_logger
from ..infra.settings import Settings, settings as default_settings
from ..scheduling.clock import Clock, MasterClock
from ..scheduling.generator import ScheduleGenerator
from ..store.protocols import (
    BindingRepository,
    PlanRepository,
    SliceRepository,
    TeamRepository,
)

logger = get_logger(__name__)


class _CustomerLocks:
    """Process-wide lock per customer id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_customer(self, customer_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(customer_id)
            if lock is None:
                lock = self._locks[customer_id] = threading.Lock()
            return lock


_customer_locks = _CustomerLocks()


@dataclass(frozen=True)
class Coverage:
    """Who is responsible at one instant. Either slice may be absent."""

    primary_slice: ScheduleSlice | None = None
    backup_slice: ScheduleSlice | None = None

    @property
    def has_coverage(self) -> bool:
        return self.primary_slice is not None or self.backup_slice is not None


@dataclass(frozen=True)
class ScheduleView:
    slices: list[ScheduleSlice]
    coverage: Coverage
    time_zone: str


@dataclass(frozen=True)
class OnCallTargets:
    """What the escalation collaborator needs to page someone."""

    customer_id: str
    primary_member_ids: tuple[str, ...] = ()
    backup_member_ids: tuple[str, ...] = ()
    plan_id: str | None = None
    escalation: EscalationPolicy | None = None

    @property
    def has_targets(self) -> bool:
        return bool(self.primary_member_ids or self.backup_member_ids)


@dataclass(frozen=True)
class GenerationOutcome:
    customer_id: str
    from_utc: datetime
    to_utc: datetime
    deleted: int
    written: int
    slices: list[ScheduleSlice] = field(default_factory=list, repr=False)


@dataclass(frozen=True)
class PlanValidationReport:
    """Result of a strict dry run for one customer."""

    customer_id: str
    plan_id: str
    slice_count: int = 0
    problems: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.problems


@dataclass(frozen=True)
class _Definitions:
    binding: CustomerBinding
    plan: Plan
    on_hours_team: Team
    off_hours_team: Team
    backup_team: Team
    extra_teams: dict[str, Team]


def select_coverage(slices: Iterable[ScheduleSlice], now_utc: datetime) -> Coverage:
    """Containing primary and backup slices; the latest start wins when several contain ``now_utc``."""
    primary = None
    backup = None
    for item in slices:
        if not item.contains(now_utc):
            continue
        if item.role in PRIMARY_ROLES:
            if primary is None or item.start_utc > primary.start_utc:
                primary = item
        elif item.role is ScheduleRole.BACKUP:
            if backup is None or item.start_utc > backup.start_utc:
                backup = item
    return Coverage(primary_slice=primary, backup_slice=backup)


def _aware_utc(name: str, value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(f"{name} must be timezone-aware")
    return value.astimezone(timezone.utc)


def _check_range(from_utc: datetime, to_utc: datetime) -> tuple[datetime, datetime]:
    from_utc = _aware_utc("from_utc", from_utc)
    to_utc = _aware_utc("to_utc", to_utc)
    if from_utc >= to_utc:
        raise InvalidRangeError(
            f"from_utc ({from_utc.isoformat()}) must be before to_utc ({to_utc.isoformat()})"
        )
    return from_utc, to_utc


class OnCallScheduleService:
    """Generation orchestration and coverage lookup for one set of stores."""

    def __init__(
        self,
        plans: PlanRepository,
        teams: TeamRepository,
        bindings: BindingRepository,
        slices: SliceRepository,
        generator: ScheduleGenerator | None = None,
        clock: Clock | None = None,
        config: Settings | None = None,
    ) -> None:
        self._plans = plans
        self._teams = teams
        self._bindings = bindings
        self._slices = slices
        self._clock = clock or MasterClock()
        self._generator = generator or ScheduleGenerator(self._clock)
        self._config = config or default_settings

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def regenerate(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        cancel_event: threading.Event | None = None,
    ) -> GenerationOutcome:
        """Replace every slice from ``from_utc`` on with a fresh run.

        A stored slice still running at ``from_utc`` is replaced as well: the
        run starts where the earliest such slice starts, so no two slices of
        one role overlap afterwards.
        """
        from_utc, to_utc = _check_range(from_utc, to_utc)
        with _customer_locks.for_customer(customer_id):
            definitions = self._load_definitions(customer_id)
            from_utc = self._rewind_to_slice_start(customer_id, from_utc)
            slices = self._generate(definitions, from_utc, to_utc, cancel_event)
            deleted = self._slices.delete_future_slices(customer_id, from_utc)
            try:
                written = self._slices.upsert_slices(slices)
            except Exception:
                logger.error(
                    "schedule_regeneration_failed",
                    customer_id=customer_id,
                    from_utc=from_utc.isoformat(),
                    to_utc=to_utc.isoformat(),
                    deleted=deleted,
                    exc_info=True,
                )
                raise
        logger.info(
            "schedule_regenerated",
            customer_id=customer_id,
            from_utc=from_utc.isoformat(),
            to_utc=to_utc.isoformat(),
            deleted=deleted,
            written=written,
        )
        return GenerationOutcome(customer_id, from_utc, to_utc, deleted, written, slices)

    def extend(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        cancel_event: threading.Event | None = None,
    ) -> GenerationOutcome:
        """Add slices for ``[from_utc, to_utc)`` without deleting anything.

        Slice ids are stable per (customer, role, start), so repeating an
        extend over the same window overwrites rather than duplicates.
        """
        from_utc, to_utc = _check_range(from_utc, to_utc)
        with _customer_locks.for_customer(customer_id):
            definitions = self._load_definitions(customer_id)
            slices = self._generate(definitions, from_utc, to_utc, cancel_event)
            written = self._slices.upsert_slices(slices)
        logger.info(
            "schedule_extended",
            customer_id=customer_id,
            from_utc=from_utc.isoformat(),
            to_utc=to_utc.isoformat(),
            written=written,
        )
        return GenerationOutcome(customer_id, from_utc, to_utc, 0, written, slices)

    def preview(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        generator: ScheduleGenerator | None = None,
    ) -> list[ScheduleSlice]:
        """Generate without persisting. Pass a strict generator to validate config."""
        from_utc, to_utc = _check_range(from_utc, to_utc)
        definitions = self._load_definitions(customer_id)
        return self._generate(definitions, from_utc, to_utc, None, generator=generator)

    def validate_plan(self, customer_id: str, from_utc: datetime, to_utc: datetime) -> PlanValidationReport:
        """Strict dry run: report configuration the generator would silently degrade."""
        from_utc, to_utc = _check_range(from_utc, to_utc)
        definitions = self._load_definitions(customer_id)
        problems: list[str] = []

        if not definitions.plan.on_hours:
            problems.append(f"Plan {definitions.plan.id} has no on-hours windows")
        for role, team in (
            (ScheduleRole.ON_HOURS, definitions.on_hours_team),
            (ScheduleRole.OFF_HOURS, definitions.off_hours_team),
            (ScheduleRole.BACKUP, definitions.backup_team),
        ):
            if not any(member.enabled for member in team.members):
                problems.append(f"{role.value} team {team.id!r} has no enabled members")

        slice_count = 0
        strict = ScheduleGenerator(self._clock, strict=True)
        try:
            slice_count = len(self._generate(definitions, from_utc, to_utc, None, generator=strict))
        except DegradedConfigError as e:
            problems.append(str(e))

        report = PlanValidationReport(
            customer_id=customer_id,
            plan_id=definitions.plan.id,
            slice_count=slice_count,
            problems=tuple(problems),
        )
        logger.info(
            "plan_validated",
            customer_id=customer_id,
            plan_id=report.plan_id,
            ok=report.ok,
            problems=len(report.problems),
        )
        return report

    def _rewind_to_slice_start(self, customer_id: str, from_utc: datetime) -> datetime:
        """Earliest start among slices that contain ``from_utc``, repeated until none straddle."""
        cutoff = from_utc
        while True:
            straddling = [
                item
                for item in self._slices.list_slices(
                    customer_id, cutoff, cutoff + timedelta(microseconds=1), limit=self._config.list_limit
                )
                if item.start_utc < cutoff
            ]
            if not straddling:
                break
            cutoff = min(item.start_utc for item in straddling)
        if cutoff != from_utc:
            logger.info(
                "regeneration_start_rewound",
                customer_id=customer_id,
                requested_from_utc=from_utc.isoformat(),
                from_utc=cutoff.isoformat(),
            )
        return cutoff

    def _generate(
        self,
        definitions: _Definitions,
        from_utc: datetime,
        to_utc: datetime,
        cancel_event: threading.Event | None,
        generator: ScheduleGenerator | None = None,
    ) -> list[ScheduleSlice]:
        return (generator or self._generator).generate(
            definitions.plan,
            definitions.binding,
            definitions.on_hours_team,
            definitions.off_hours_team,
            definitions.backup_team,
            from_utc,
            to_utc,
            teams=definitions.extra_teams,
            cancel_event=cancel_event,
        )

    def _load_definitions(self, customer_id: str) -> _Definitions:
        binding = self._bindings.get_binding(customer_id)
        if binding is None:
            raise BindingNotFoundError(customer_id)
        plan = self._plans.get_plan(binding.plan_id)
        if plan is None:
            raise PlanNotFoundError(binding.plan_id)

        bound = {
            team_id: self._require_team(team_id)
            for team_id in (
                binding.on_hours_team_id,
                binding.off_hours_team_id,
                binding.backup_team_id,
            )
        }

        # Teams only named by overrides are optional; unknown ones degrade in the generator.
        extra: dict[str, Team] = {}
        for override in (*plan.overrides, *binding.customer_overrides):
            for role in ScheduleRole:
                team_id = override.team_id_for(role)
                if not team_id or team_id in bound or team_id in extra:
                    continue
                team = self._teams.get_team(team_id)
                if team is not None:
                    extra[team_id] = team

        return _Definitions(
            binding=binding,
            plan=plan,
            on_hours_team=bound[binding.on_hours_team_id],
            off_hours_team=bound[binding.off_hours_team_id],
            backup_team=bound[binding.backup_team_id],
            extra_teams=extra,
        )

    def _require_team(self, team_id: str) -> Team:
        team = self._teams.get_team(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)
        return team

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_coverage(self, customer_id: str, now_utc: datetime | None = None) -> Coverage:
        """Primary (OnHours/OffHours) and Backup slices containing ``now_utc``."""
        now = _aware_utc("now_utc", now_utc) if now_utc is not None else self._clock.now_utc()
        around = timedelta(minutes=self._config.coverage_lookaround_minutes)
        slices = self._slices.list_slices(
            customer_id, now - around, now + around, limit=self._config.list_limit
        )
        return select_coverage(slices, now)

    def get_schedule(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        limit: int | None = None,
    ) -> ScheduleView:
        """Persisted slices for a window, the current coverage, and the display zone.

        An empty window falls back to the default horizon around now instead
        of failing; slices are only generated by regenerate/extend.
        """
        from_utc, to_utc = _check_range(from_utc, to_utc)
        limit = limit or self._config.list_limit
        slices = self._slices.list_slices(customer_id, from_utc, to_utc, limit=limit)
        if not slices:
            now = self._clock.now_utc()
            slices = self._slices.list_slices(
                customer_id,
                now - timedelta(days=self._config.schedule_lookback_days),
                now + timedelta(days=self._config.schedule_lookahead_days),
                limit=limit,
            )
        return ScheduleView(
            slices=slices,
            coverage=self.get_current_coverage(customer_id),
            time_zone=self._display_time_zone(customer_id),
        )

    def get_on_call_targets(self, customer_id: str, now_utc: datetime | None = None) -> OnCallTargets:
        """Member ids to page now, plus the escalation policy of the covering plan."""
        coverage = self.get_current_coverage(customer_id, now_utc)
        primary, backup = coverage.primary_slice, coverage.backup_slice

        plan_id = None
        if primary is not None:
            plan_id = primary.plan_id
        elif backup is not None:
            plan_id = backup.plan_id

        escalation = None
        if plan_id:
            plan = self._plans.get_plan(plan_id)
            if plan is not None:
                escalation = plan.escalation

        targets = OnCallTargets(
            customer_id=customer_id,
            primary_member_ids=primary.member_ids if primary is not None else (),
            backup_member_ids=backup.member_ids if backup is not None else (),
            plan_id=plan_id,
            escalation=escalation,
        )
        logger.info(
            "oncall_targets_resolved",
            customer_id=customer_id,
            primary_count=len(targets.primary_member_ids),
            backup_count=len(targets.backup_member_ids),
        )
        return targets

    def now_utc(self) -> datetime:
        return self._clock.now_utc()

    def get_latest_slice(self, customer_id: str) -> ScheduleSlice | None:
        return self._slices.get_latest_slice(customer_id)

    def list_bindings(self, limit: int = 500) -> list[CustomerBinding]:
        return self._bindings.list_bindings(limit=limit)

    def _display_time_zone(self, customer_id: str) -> str:
        binding = self._bindings.get_binding(customer_id)
        if binding is None:
            return "UTC"
        plan = self._plans.get_plan(binding.plan_id)
        return plan.time_zone if plan is not None else "UTC"
