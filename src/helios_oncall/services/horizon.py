"""Schedule horizon extender.

Keeps every bound customer's schedule generated at least ``horizon_days``
ahead of now. Run it once per pass with ``evaluate_once()`` or on a
background daemon thread with ``start()``/``stop()``.

Per binding:
- no slices yet: regenerate ``[today 00:00 UTC, today + horizon_days)``
- latest slice ends before the horizon: extend from that end to the horizon
- otherwise: skip

A failure for one customer is logged and counted; the pass continues.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..infra.logging import get_logger
from ..infra.settings import settings
from ..scheduling.clock import Clock, MasterClock
from .schedule_service import OnCallScheduleService

logger = get_logger(__name__)


@dataclass
class ExtensionReport:
    """Counters for one evaluation pass."""

    extended: int = 0
    skipped: int = 0
    errors: int = 0
    failed_customers: list[str] = field(default_factory=list)
    evaluated_at_utc: datetime | None = None

    @property
    def total(self) -> int:
        return self.extended + self.skipped + self.errors


class ScheduleHorizonExtender:
    """Extends customer schedules up to a rolling horizon."""

    def __init__(
        self,
        service: OnCallScheduleService,
        clock: Clock | None = None,
        *,
        horizon_days: int | None = None,
        interval_seconds: int | None = None,
        binding_limit: int | None = None,
    ) -> None:
        self._service = service
        self._clock = clock or MasterClock()
        self._horizon_days = horizon_days if horizon_days is not None else settings.horizon_days
        self._interval_s = (
            interval_seconds if interval_seconds is not None else settings.horizon_interval_seconds
        )
        self._binding_limit = binding_limit or settings.list_limit

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_report: ExtensionReport | None = None

    @property
    def last_report(self) -> ExtensionReport | None:
        return self._last_report

    def evaluate_once(self) -> ExtensionReport:
        """Run one pass over every binding."""
        now = self._clock.now_utc().astimezone(timezone.utc)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        horizon = today + timedelta(days=self._horizon_days)

        report = ExtensionReport(evaluated_at_utc=now)
        for binding in self._service.list_bindings(limit=self._binding_limit):
            if self._stop_event.is_set():
                break
            customer_id = binding.customer_id
            try:
                latest = self._service.get_latest_slice(customer_id)
                if latest is None:
                    self._service.regenerate(customer_id, today, horizon)
                    report.extended += 1
                elif latest.end_utc < horizon:
                    self._service.extend(customer_id, latest.end_utc, horizon)
                    report.extended += 1
                else:
                    report.skipped += 1
            except Exception:
                report.errors += 1
                report.failed_customers.append(customer_id)
                logger.error("horizon_extension_failed", customer_id=customer_id, exc_info=True)

        self._last_report = report
        logger.info(
            "horizon_evaluated",
            horizon_utc=horizon.isoformat(),
            extended=report.extended,
            skipped=report.skipped,
            errors=report.errors,
        )
        return report

    # ------------------------------------------------------------------
    # Background thread
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background evaluation thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="ScheduleHorizonExtender",
            daemon=True,
        )
        self._thread.start()
        logger.info("horizon_extender_started", interval_seconds=self._interval_s)

    def stop(self) -> None:
        """Stop the background evaluation thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval_s + 5)
            self._thread = None
        logger.info("horizon_extender_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.evaluate_once()
            except Exception:
                logger.exception("horizon_evaluation_failed")
            self._stop_event.wait(timeout=self._interval_s)
