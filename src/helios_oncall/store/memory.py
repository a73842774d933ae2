"""In-memory stores for definitions and schedule slices.

Thread-safe. Used by tests, the CLI's file-backed definitions, and any
deployment that does not need slices to survive a restart.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import datetime

from ..domain.models import CustomerBinding, Plan, ScheduleSlice, Team
from .validation import (
    as_utc,
    normalize_binding,
    normalize_plan,
    normalize_slice,
    normalize_team,
    require_customer_id,
)


class InMemoryDefinitionStore:
    """Plans, teams, and bindings keyed by id (bindings by customer id)."""

    def __init__(
        self,
        plans: Iterable[Plan] = (),
        teams: Iterable[Team] = (),
        bindings: Iterable[CustomerBinding] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._plans: dict[str, Plan] = {}
        self._teams: dict[str, Team] = {}
        self._bindings: dict[str, CustomerBinding] = {}
        for plan in plans:
            self.upsert_plan(plan)
        for team in teams:
            self.upsert_team(team)
        for binding in bindings:
            self.upsert_binding(binding)

    # -- plans ---------------------------------------------------------

    def get_plan(self, plan_id: str) -> Plan | None:
        with self._lock:
            return self._plans.get(plan_id)

    def list_plans(self, limit: int = 100, offset: int = 0) -> list[Plan]:
        with self._lock:
            ordered = sorted(self._plans.values(), key=lambda p: (p.name, p.id))
        return ordered[offset:offset + limit]

    def upsert_plan(self, plan: Plan) -> Plan:
        plan = normalize_plan(plan)
        with self._lock:
            self._plans[plan.id] = plan
        return plan

    def delete_plan(self, plan_id: str) -> bool:
        with self._lock:
            return self._plans.pop(plan_id, None) is not None

    # -- teams ---------------------------------------------------------

    def get_team(self, team_id: str) -> Team | None:
        with self._lock:
            return self._teams.get(team_id)

    def list_teams(self, limit: int = 100, offset: int = 0) -> list[Team]:
        with self._lock:
            ordered = sorted(self._teams.values(), key=lambda t: (t.name, t.id))
        return ordered[offset:offset + limit]

    def upsert_team(self, team: Team) -> Team:
        team = normalize_team(team)
        with self._lock:
            self._teams[team.id] = team
        return team

    def delete_team(self, team_id: str) -> bool:
        with self._lock:
            return self._teams.pop(team_id, None) is not None

    # -- bindings ------------------------------------------------------

    def get_binding(self, customer_id: str) -> CustomerBinding | None:
        require_customer_id(customer_id)
        with self._lock:
            return self._bindings.get(customer_id)

    def list_bindings(self, limit: int = 100, offset: int = 0) -> list[CustomerBinding]:
        with self._lock:
            ordered = sorted(self._bindings.values(), key=lambda b: b.customer_id)
        return ordered[offset:offset + limit]

    def upsert_binding(self, binding: CustomerBinding) -> CustomerBinding:
        binding = normalize_binding(binding)
        with self._lock:
            self._bindings[binding.customer_id] = binding
        return binding

    def delete_binding(self, customer_id: str) -> bool:
        with self._lock:
            return self._bindings.pop(customer_id, None) is not None


class InMemorySliceStore:
    """Schedule slices keyed by id.

    Set fail_next_upsert=True to simulate a write failure in tests.
    """

    def __init__(self) -> None:
        self._slices: dict[str, ScheduleSlice] = {}
        self._lock = threading.Lock()
        self.fail_next_upsert: bool = False

    def upsert_slice(self, item: ScheduleSlice) -> None:
        self.upsert_slices([item])

    def upsert_slices(self, slices: Iterable[ScheduleSlice]) -> int:
        items = [normalize_slice(s) for s in slices]
        with self._lock:
            if self.fail_next_upsert:
                self.fail_next_upsert = False
                raise RuntimeError("SLICE_UPSERT_FAILED")
            for item in items:
                self._slices[item.id] = item
        return len(items)

    def delete_future_slices(self, customer_id: str, from_utc: datetime) -> int:
        require_customer_id(customer_id)
        cutoff = as_utc(from_utc)
        with self._lock:
            doomed = [
                s.id for s in self._slices.values()
                if s.customer_id == customer_id and s.start_utc >= cutoff
            ]
            for slice_id in doomed:
                del self._slices[slice_id]
        return len(doomed)

    def list_slices(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        limit: int = 500,
    ) -> list[ScheduleSlice]:
        require_customer_id(customer_id)
        start, end = as_utc(from_utc), as_utc(to_utc)
        with self._lock:
            matching = [
                s for s in self._slices.values()
                if s.customer_id == customer_id and s.overlaps(start, end)
            ]
        matching.sort(key=lambda s: (s.start_utc, s.role.value))
        return matching[:limit]

    def get_latest_slice(self, customer_id: str) -> ScheduleSlice | None:
        require_customer_id(customer_id)
        with self._lock:
            candidates = [s for s in self._slices.values() if s.customer_id == customer_id]
        if not candidates:
            return None
        return max(candidates, key=lambda s: (s.end_utc, s.start_utc))

    def all_slices(self) -> list[ScheduleSlice]:
        """Every stored slice, ordered by start."""
        with self._lock:
            return sorted(self._slices.values(), key=lambda s: (s.start_utc, s.role.value))
