"""
Tests for ScheduleHorizonExtender.

Verifies:
- A customer with no slices is regenerated from today 00:00 UTC to the horizon
- A customer whose latest slice ends short of the horizon is extended from that end
- A customer already generated to the horizon is skipped
- One failing customer is counted and does not stop the pass
- The background thread runs a pass and stops cleanly
"""

from __future__ import annotations

import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from helios_oncall.domain.models import ScheduleRole
from helios_oncall.services.horizon import ExtensionReport, ScheduleHorizonExtender

TODAY = datetime(2026, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def extender(service, clock):
    return ScheduleHorizonExtender(service, clock, horizon_days=3, interval_seconds=3600)


class TestEvaluateOnce:
    """One pass over every binding."""

    def test_first_pass_regenerates_to_horizon(self, extender, service, slice_store):
        report = extender.evaluate_once()
        assert (report.extended, report.skipped, report.errors) == (1, 0, 0)
        assert min(s.start_utc for s in slice_store.all_slices()) == TODAY
        assert service.get_latest_slice("contoso").end_utc == TODAY + timedelta(days=3)

    def test_second_pass_skips(self, extender):
        extender.evaluate_once()
        report = extender.evaluate_once()
        assert (report.extended, report.skipped) == (0, 1)

    def test_next_day_extends_from_latest_end(self, extender, service, slice_store, clock):
        extender.evaluate_once()
        before = len(slice_store.all_slices())

        clock.advance(timedelta(days=1))
        report = extender.evaluate_once()

        assert report.extended == 1
        assert len(slice_store.all_slices()) > before
        assert service.get_latest_slice("contoso").end_utc == TODAY + timedelta(days=4)
        backups = [s for s in slice_store.all_slices() if s.role is ScheduleRole.BACKUP]
        for prev, nxt in zip(backups, backups[1:]):
            assert prev.end_utc == nxt.start_utc

    def test_failing_customer_is_counted(self, extender, definitions, binding):
        definitions.upsert_binding(replace(binding, customer_id="broken", id="", plan_id="ghost"))
        report = extender.evaluate_once()
        assert report.errors == 1
        assert report.failed_customers == ["broken"]
        assert report.extended == 1
        assert report.total == 2

    def test_last_report_is_kept(self, extender):
        assert extender.last_report is None
        report = extender.evaluate_once()
        assert extender.last_report is report
        assert report.evaluated_at_utc == datetime(2026, 6, 1, 12, tzinfo=timezone.utc)

    def test_no_bindings(self, service, clock, definitions):
        definitions.delete_binding("contoso")
        report = ScheduleHorizonExtender(service, clock, horizon_days=3).evaluate_once()
        assert report == ExtensionReport(evaluated_at_utc=report.evaluated_at_utc)
        assert report.total == 0


class TestBackgroundThread:
    """start()/stop() lifecycle."""

    def test_runs_a_pass_and_stops(self, extender):
        extender.start()
        try:
            assert extender.is_running
            deadline = time.monotonic() + 5
            while extender.last_report is None and time.monotonic() < deadline:
                time.sleep(0.01)
            assert extender.last_report is not None
            assert extender.last_report.extended == 1
        finally:
            extender.stop()
        assert not extender.is_running

    def test_start_twice_is_harmless(self, extender):
        extender.start()
        try:
            extender.start()
            assert extender.is_running
        finally:
            extender.stop()
