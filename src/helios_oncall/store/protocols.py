"""Repository protocols consumed by the schedule service.

Concrete stores (in-memory, SQLAlchemy) satisfy these structurally. Reads
return ``None`` for a missing entity; deciding whether that is fatal is the
caller's job.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, runtime_checkable

from ..domain.models import CustomerBinding, Plan, ScheduleSlice, Team


@runtime_checkable
class PlanRepository(Protocol):
    def get_plan(self, plan_id: str) -> Plan | None: ...

    def list_plans(self, limit: int = 100, offset: int = 0) -> list[Plan]: ...

    def upsert_plan(self, plan: Plan) -> Plan: ...

    def delete_plan(self, plan_id: str) -> bool: ...


@runtime_checkable
class TeamRepository(Protocol):
    def get_team(self, team_id: str) -> Team | None: ...

    def list_teams(self, limit: int = 100, offset: int = 0) -> list[Team]: ...

    def upsert_team(self, team: Team) -> Team: ...

    def delete_team(self, team_id: str) -> bool: ...


@runtime_checkable
class BindingRepository(Protocol):
    def get_binding(self, customer_id: str) -> CustomerBinding | None: ...

    def list_bindings(self, limit: int = 100, offset: int = 0) -> list[CustomerBinding]: ...

    def upsert_binding(self, binding: CustomerBinding) -> CustomerBinding: ...

    def delete_binding(self, customer_id: str) -> bool: ...


@runtime_checkable
class SliceRepository(Protocol):
    def upsert_slice(self, item: ScheduleSlice) -> None: ...

    def upsert_slices(self, slices: Iterable[ScheduleSlice]) -> int:
        """Insert or overwrite by slice id. Returns the number written."""
        ...

    def delete_future_slices(self, customer_id: str, from_utc: datetime) -> int:
        """Delete slices with ``start_utc >= from_utc``. Returns the number deleted."""
        ...

    def list_slices(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        limit: int = 500,
    ) -> list[ScheduleSlice]:
        """Slices overlapping ``[from_utc, to_utc)``, ordered by start."""
        ...

    def get_latest_slice(self, customer_id: str) -> ScheduleSlice | None:
        """The slice with the greatest ``end_utc``."""
        ...
