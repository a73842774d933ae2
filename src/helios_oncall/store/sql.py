"""
SQLAlchemy repositories for on-call definitions and schedule slices.

Thin wrappers around a Session, following the Unit of Work pattern in
``infra.uow``: the repositories never commit, the session owner does.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.entities import BindingRow, PlanRow, ScheduleSliceRow, TeamRow
from ..domain.models import CustomerBinding, Plan, ScheduleRole, ScheduleSlice, Team
from ..domain.serialization import (
    binding_from_payload,
    binding_to_payload,
    plan_from_payload,
    plan_to_payload,
    team_from_payload,
    team_to_payload,
)
from .validation import (
    as_utc,
    normalize_binding,
    normalize_plan,
    normalize_slice,
    normalize_team,
    require_customer_id,
)


class SqlDefinitionRepository:
    """
    Plans, teams, and bindings stored as JSON documents.

    Args:
        db: SQLAlchemy session instance
    """

    def __init__(self, db: Session):
        self.db = db

    # -- plans ---------------------------------------------------------

    def get_plan(self, plan_id: str) -> Plan | None:
        row = self.db.get(PlanRow, plan_id)
        return plan_from_payload(row.payload) if row is not None else None

    def list_plans(self, limit: int = 100, offset: int = 0) -> list[Plan]:
        stmt = select(PlanRow).order_by(PlanRow.name, PlanRow.id).offset(offset).limit(limit)
        return [plan_from_payload(row.payload) for row in self.db.scalars(stmt)]

    def upsert_plan(self, plan: Plan) -> Plan:
        plan = normalize_plan(plan)
        self.db.merge(
            PlanRow(id=plan.id, name=plan.name, version=plan.version, payload=plan_to_payload(plan))
        )
        self.db.flush()
        return plan

    def delete_plan(self, plan_id: str) -> bool:
        result = self.db.execute(delete(PlanRow).where(PlanRow.id == plan_id))
        return result.rowcount > 0

    # -- teams ---------------------------------------------------------

    def get_team(self, team_id: str) -> Team | None:
        row = self.db.get(TeamRow, team_id)
        return team_from_payload(row.payload) if row is not None else None

    def list_teams(self, limit: int = 100, offset: int = 0) -> list[Team]:
        stmt = select(TeamRow).order_by(TeamRow.name, TeamRow.id).offset(offset).limit(limit)
        return [team_from_payload(row.payload) for row in self.db.scalars(stmt)]

    def upsert_team(self, team: Team) -> Team:
        team = normalize_team(team)
        self.db.merge(TeamRow(id=team.id, name=team.name, payload=team_to_payload(team)))
        self.db.flush()
        return team

    def delete_team(self, team_id: str) -> bool:
        result = self.db.execute(delete(TeamRow).where(TeamRow.id == team_id))
        return result.rowcount > 0

    # -- bindings ------------------------------------------------------

    def get_binding(self, customer_id: str) -> CustomerBinding | None:
        require_customer_id(customer_id)
        row = self.db.get(BindingRow, customer_id)
        return binding_from_payload(row.payload) if row is not None else None

    def list_bindings(self, limit: int = 100, offset: int = 0) -> list[CustomerBinding]:
        stmt = select(BindingRow).order_by(BindingRow.customer_id).offset(offset).limit(limit)
        return [binding_from_payload(row.payload) for row in self.db.scalars(stmt)]

    def upsert_binding(self, binding: CustomerBinding) -> CustomerBinding:
        binding = normalize_binding(binding)
        self.db.merge(
            BindingRow(
                customer_id=binding.customer_id,
                plan_id=binding.plan_id,
                payload=binding_to_payload(binding),
            )
        )
        self.db.flush()
        return binding

    def delete_binding(self, customer_id: str) -> bool:
        result = self.db.execute(delete(BindingRow).where(BindingRow.customer_id == customer_id))
        return result.rowcount > 0


def _row_to_slice(row: ScheduleSliceRow) -> ScheduleSlice:
    return ScheduleSlice(
        id=row.id,
        customer_id=row.customer_id,
        plan_id=row.plan_id,
        plan_version=row.plan_version,
        role=ScheduleRole(row.role),
        team_id=row.team_id,
        member_ids=tuple(row.member_ids or ()),
        start_utc=as_utc(row.start_utc),
        end_utc=as_utc(row.end_utc),
        generated_at_utc=as_utc(row.generated_at_utc),
    )


def _slice_to_row(item: ScheduleSlice) -> ScheduleSliceRow:
    return ScheduleSliceRow(
        id=item.id,
        customer_id=item.customer_id,
        plan_id=item.plan_id,
        plan_version=item.plan_version,
        role=item.role.value,
        team_id=item.team_id,
        member_ids=list(item.member_ids),
        start_utc=as_utc(item.start_utc),
        end_utc=as_utc(item.end_utc),
        generated_at_utc=as_utc(item.generated_at_utc),
    )


class SqlSliceRepository:
    """
    Schedule slices with indexed range queries per customer.

    Args:
        db: SQLAlchemy session instance
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert_slice(self, item: ScheduleSlice) -> None:
        self.upsert_slices([item])

    def upsert_slices(self, slices: Iterable[ScheduleSlice]) -> int:
        count = 0
        for item in slices:
            self.db.merge(_slice_to_row(normalize_slice(item)))
            count += 1
        self.db.flush()
        return count

    def delete_future_slices(self, customer_id: str, from_utc: datetime) -> int:
        require_customer_id(customer_id)
        self.db.flush()
        stmt = delete(ScheduleSliceRow).where(
            ScheduleSliceRow.customer_id == customer_id,
            ScheduleSliceRow.start_utc >= as_utc(from_utc),
        )
        result = self.db.execute(stmt, execution_options={"synchronize_session": False})
        # Detach stale identities so a following merge() inserts fresh rows.
        self.db.expunge_all()
        return result.rowcount

    def list_slices(
        self,
        customer_id: str,
        from_utc: datetime,
        to_utc: datetime,
        limit: int = 500,
    ) -> list[ScheduleSlice]:
        require_customer_id(customer_id)
        stmt = (
            select(ScheduleSliceRow)
            .where(
                ScheduleSliceRow.customer_id == customer_id,
                ScheduleSliceRow.start_utc < as_utc(to_utc),
                ScheduleSliceRow.end_utc > as_utc(from_utc),
            )
            .order_by(ScheduleSliceRow.start_utc, ScheduleSliceRow.role)
            .limit(limit)
        )
        return [_row_to_slice(row) for row in self.db.scalars(stmt)]

    def get_latest_slice(self, customer_id: str) -> ScheduleSlice | None:
        require_customer_id(customer_id)
        stmt = (
            select(ScheduleSliceRow)
            .where(ScheduleSliceRow.customer_id == customer_id)
            .order_by(ScheduleSliceRow.end_utc.desc(), ScheduleSliceRow.start_utc.desc())
            .limit(1)
        )
        row = self.db.scalars(stmt).first()
        return _row_to_slice(row) if row is not None else None
