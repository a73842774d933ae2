"""Tests for OnCallScheduleService.

Verifies:
- regenerate deletes future slices then writes a fresh run; re-running does not duplicate
- extend only upserts; repeating an extend overwrites
- Missing binding / plan / team raise the matching NotFound errors
- Invalid input and cancellation leave the store untouched
- A failed write surfaces to the caller after the delete (gap, never overlap)
- Coverage, schedule view, and on-call targets read from persisted slices
- validate_plan reports degradations without writing
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from helios_oncall.domain.models import EscalationPolicy, PlanOverride, ScheduleRole, Team, TeamMember
from helios_oncall.infra.exceptions import (
    BindingNotFoundError,
    GenerationCancelled,
    InvalidRangeError,
    PlanNotFoundError,
    TeamNotFoundError,
    ValidationError,
)
from helios_oncall.services.schedule_service import select_coverage

START = datetime(2026, 6, 1, 4, tzinfo=timezone.utc)  # Monday 00:00 EDT
END = START + timedelta(days=7)


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _assert_no_overlap(slices):
    for role in ScheduleRole:
        ordered = sorted((s for s in slices if s.role is role), key=lambda s: s.start_utc)
        for prev, nxt in zip(ordered, ordered[1:]):
            assert prev.end_utc <= nxt.start_utc, (role, prev, nxt)


# ---------------------------------------------------------------------------
# Regenerate / extend
# ---------------------------------------------------------------------------

class TestRegenerate:
    """Delete-then-write for one customer."""

    def test_writes_generated_slices(self, service, slice_store):
        outcome = service.regenerate("contoso", START, END)
        assert outcome.deleted == 0
        assert outcome.written == len(outcome.slices) > 0
        assert len(slice_store.all_slices()) == outcome.written

    def test_rerun_replaces_without_duplicates(self, service, slice_store):
        first = service.regenerate("contoso", START, END)
        second = service.regenerate("contoso", START, END)
        assert second.deleted == first.written
        assert len(slice_store.all_slices()) == first.written
        _assert_no_overlap(slice_store.all_slices())

    def test_partial_regenerate_keeps_earlier_slices(self, service, slice_store, definitions, binding):
        service.regenerate("contoso", START, END)
        before = {s.id: s for s in slice_store.all_slices() if s.start_utc < START + timedelta(days=3)}

        changed = replace(
            binding,
            customer_overrides=(PlanOverride(START.date() + timedelta(days=4), on_hours_team_id="team-c"),),
        )
        definitions.upsert_binding(changed)
        service.regenerate("contoso", START + timedelta(days=3), END)

        stored = slice_store.all_slices()
        for item in stored:
            if item.start_utc < START + timedelta(days=3):
                assert before[item.id] == item
        friday_on = [
            s for s in stored
            if s.role is ScheduleRole.ON_HOURS and s.start_utc.date() == (START + timedelta(days=4)).date()
        ]
        assert [s.team_id for s in friday_on] == ["team-c"]
        _assert_no_overlap(stored)

    def test_start_inside_a_slice_replaces_that_slice(self, service, slice_store, definitions, binding):
        service.regenerate("contoso", START, START + timedelta(days=2))
        definitions.upsert_binding(replace(binding, on_hours_team_id="team-b"))

        outcome = service.regenerate("contoso", _utc(2026, 6, 1, 15), START + timedelta(days=2))

        # Monday's backup slice began at START and was still running at 15:00Z
        assert outcome.from_utc == START
        stored = slice_store.all_slices()
        _assert_no_overlap(stored)
        at_four = [s for s in stored if s.role is ScheduleRole.ON_HOURS and s.contains(_utc(2026, 6, 1, 16))]
        assert [(s.team_id, s.start_utc, s.end_utc) for s in at_four] == [
            ("team-b", _utc(2026, 6, 1, 13), _utc(2026, 6, 1, 21))
        ]
        coverage = service.get_current_coverage("contoso", _utc(2026, 6, 1, 16))
        assert coverage.primary_slice.team_id == "team-b"

    def test_start_on_a_boundary_is_not_rewound(self, service):
        service.regenerate("contoso", START, END)
        outcome = service.regenerate("contoso", START + timedelta(days=3), END)
        assert outcome.from_utc == START + timedelta(days=3)

    def test_concurrent_regenerations_do_not_overlap(self, service, slice_store):
        expected = len(service.regenerate("contoso", START, END).slices)
        errors: list[Exception] = []

        def worker():
            try:
                service.regenerate("contoso", START, END)
            except Exception as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert errors == []
        assert len(slice_store.all_slices()) == expected
        _assert_no_overlap(slice_store.all_slices())


class TestExtend:
    """Upsert-only generation."""

    def test_extend_twice_does_not_duplicate(self, service, slice_store):
        first = service.extend("contoso", START, END)
        second = service.extend("contoso", START, END)
        assert first.deleted == second.deleted == 0
        assert len(slice_store.all_slices()) == first.written

    def test_extend_after_regenerate_is_contiguous(self, service, slice_store):
        service.regenerate("contoso", START, START + timedelta(days=2))
        latest = service.get_latest_slice("contoso")
        service.extend("contoso", latest.end_utc, END)
        stored = slice_store.all_slices()
        _assert_no_overlap(stored)
        backups = sorted((s for s in stored if s.role is ScheduleRole.BACKUP), key=lambda s: s.start_utc)
        for prev, nxt in zip(backups, backups[1:]):
            assert prev.end_utc == nxt.start_utc


class TestFailures:
    """Errors surface to the caller."""

    def test_missing_binding(self, service):
        with pytest.raises(BindingNotFoundError) as exc:
            service.regenerate("nobody", START, END)
        assert exc.value.identifier == "nobody"

    def test_missing_plan(self, service, definitions):
        definitions.delete_plan("plan-ny")
        with pytest.raises(PlanNotFoundError):
            service.regenerate("contoso", START, END)

    def test_missing_team(self, service, definitions):
        definitions.delete_team("team-b")
        with pytest.raises(TeamNotFoundError) as exc:
            service.extend("contoso", START, END)
        assert exc.value.identifier == "team-b"

    def test_invalid_range_touches_nothing(self, service, slice_store):
        service.regenerate("contoso", START, END)
        count = len(slice_store.all_slices())
        with pytest.raises(InvalidRangeError):
            service.regenerate("contoso", END, START)
        assert len(slice_store.all_slices()) == count

    def test_cancel_before_delete(self, service, slice_store):
        service.regenerate("contoso", START, END)
        count = len(slice_store.all_slices())
        event = threading.Event()
        event.set()
        with pytest.raises(GenerationCancelled):
            service.regenerate("contoso", START, END, cancel_event=event)
        assert len(slice_store.all_slices()) == count

    def test_failed_write_leaves_gap_not_overlap(self, service, slice_store):
        service.regenerate("contoso", START, END)
        cutoff = START + timedelta(days=2)
        slice_store.fail_next_upsert = True
        with pytest.raises(RuntimeError, match="SLICE_UPSERT_FAILED"):
            service.regenerate("contoso", cutoff, END)
        assert all(s.start_utc < cutoff for s in slice_store.all_slices())

    def test_override_team_is_prefetched(self, service, slice_store, definitions, binding):
        definitions.upsert_team(Team(id="team-x", name="X", members=(TeamMember("xavier"),)))
        definitions.upsert_binding(
            replace(binding, customer_overrides=(PlanOverride(START.date(), on_hours_team_id="team-x"),))
        )
        slices = service.regenerate("contoso", START, START + timedelta(days=1)).slices
        [on] = [s for s in slices if s.role is ScheduleRole.ON_HOURS]
        assert (on.team_id, on.member_ids) == ("team-x", ("xavier",))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestCoverage:
    """Who covers an instant."""

    @pytest.fixture(autouse=True)
    def _generated(self, service):
        service.regenerate("contoso", START, END)

    def test_off_hours_in_the_morning(self, service):
        coverage = service.get_current_coverage("contoso", _utc(2026, 6, 1, 12))
        assert coverage.has_coverage
        assert coverage.primary_slice.role is ScheduleRole.OFF_HOURS
        assert coverage.primary_slice.member_ids == ("erin",)
        assert coverage.backup_slice.member_ids == ("frank",)

    def test_on_hours_in_the_afternoon(self, service):
        coverage = service.get_current_coverage("contoso", _utc(2026, 6, 1, 15))
        assert coverage.primary_slice.role is ScheduleRole.ON_HOURS
        assert coverage.primary_slice.member_ids == ("alice",)

    def test_boundary_instant_belongs_to_the_later_slice(self, service):
        coverage = service.get_current_coverage("contoso", _utc(2026, 6, 1, 13))
        assert coverage.primary_slice.role is ScheduleRole.ON_HOURS

    def test_defaults_to_clock_now(self, service):
        coverage = service.get_current_coverage("contoso")
        assert coverage.primary_slice.role is ScheduleRole.OFF_HOURS

    def test_no_slices_is_not_an_error(self, service):
        coverage = service.get_current_coverage("contoso", _utc(2031, 1, 1))
        assert not coverage.has_coverage
        assert coverage.primary_slice is None and coverage.backup_slice is None

    def test_naive_instant_rejected(self, service):
        with pytest.raises(ValidationError):
            service.get_current_coverage("contoso", datetime(2026, 6, 1, 12))

    def test_latest_start_wins_between_overlapping_slices(self, slice_store):
        on_hours = next(
            s for s in slice_store.all_slices()
            if s.role is ScheduleRole.ON_HOURS and s.contains(_utc(2026, 6, 1, 16))
        )
        later = replace(on_hours, id="later", team_id="team-b", start_utc=_utc(2026, 6, 1, 15))

        coverage = select_coverage([on_hours, later], _utc(2026, 6, 1, 16))
        assert coverage.primary_slice.id == "later"
        coverage = select_coverage([later, on_hours], _utc(2026, 6, 1, 16))
        assert coverage.primary_slice.id == "later"


class TestScheduleView:
    """Slices, coverage, and display zone."""

    def test_window(self, service):
        service.regenerate("contoso", START, END)
        view = service.get_schedule("contoso", START, START + timedelta(days=1))
        assert view.time_zone == "America/New_York"
        assert [s.role for s in view.slices[:2]] == [ScheduleRole.BACKUP, ScheduleRole.OFF_HOURS]
        assert view.coverage.has_coverage

    def test_empty_window_falls_back_to_default_horizon(self, service):
        service.regenerate("contoso", START, END)
        view = service.get_schedule("contoso", _utc(2030, 1, 1), _utc(2030, 1, 2))
        assert view.slices
        assert min(s.start_utc for s in view.slices) == START

    def test_limit(self, service):
        service.regenerate("contoso", START, END)
        assert len(service.get_schedule("contoso", START, END, limit=3).slices) == 3

    def test_unknown_customer_is_empty_in_utc(self, service):
        view = service.get_schedule("nobody", START, END)
        assert view.slices == []
        assert view.time_zone == "UTC"
        assert not view.coverage.has_coverage

    def test_invalid_range(self, service):
        with pytest.raises(InvalidRangeError):
            service.get_schedule("contoso", END, START)


class TestOnCallTargets:
    """Member ids plus escalation policy."""

    def test_targets_during_on_hours(self, service):
        service.regenerate("contoso", START, END)
        targets = service.get_on_call_targets("contoso", _utc(2026, 6, 1, 15))
        assert targets.primary_member_ids == ("alice",)
        assert targets.backup_member_ids == ("frank",)
        assert targets.plan_id == "plan-ny"
        assert targets.escalation == EscalationPolicy()
        assert targets.has_targets

    def test_custom_escalation_policy(self, service, definitions, ny_plan):
        policy = EscalationPolicy(ack_timeout=timedelta(minutes=2), max_retries=5, retry_delay=timedelta(minutes=1))
        definitions.upsert_plan(replace(ny_plan, escalation=policy))
        service.regenerate("contoso", START, END)
        assert service.get_on_call_targets("contoso", _utc(2026, 6, 1, 15)).escalation == policy

    def test_no_coverage(self, service):
        targets = service.get_on_call_targets("contoso", _utc(2026, 6, 1, 15))
        assert not targets.has_targets
        assert targets.plan_id is None
        assert targets.escalation is None


class TestValidatePlan:
    """Strict dry run."""

    def test_valid_plan(self, service, slice_store):
        report = service.validate_plan("contoso", START, END)
        assert report.ok
        assert report.slice_count > 0
        assert slice_store.all_slices() == []

    def test_unknown_zone_reported(self, service, definitions, ny_plan):
        definitions.upsert_plan(replace(ny_plan, time_zone="Mars/Olympus"))
        report = service.validate_plan("contoso", START, END)
        assert not report.ok
        assert any("Mars/Olympus" in p for p in report.problems)

    def test_unknown_override_team_reported(self, service, definitions, binding):
        definitions.upsert_binding(
            replace(binding, customer_overrides=(PlanOverride(START.date(), backup_team_id="ghost"),))
        )
        report = service.validate_plan("contoso", START, END)
        assert any("ghost" in p for p in report.problems)

    def test_team_without_enabled_members_reported(self, service, definitions):
        definitions.upsert_team(Team(id="team-c", name="C", members=(TeamMember("frank", enabled=False),)))
        report = service.validate_plan("contoso", START, END)
        assert any("team-c" in p for p in report.problems)
