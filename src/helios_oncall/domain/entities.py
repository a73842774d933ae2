"""
Table mappings for on-call definitions and schedule slices.

Plans, teams, and bindings are stored as JSON documents keyed by id, the
way the rest of Helios365 keeps them in its document store. Slices get real
columns because they are range-queried on every coverage lookup.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..infra.db import Base


class PlanRow(Base):
    __tablename__ = "oncall_plans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    version: Mapped[str] = mapped_column(String(64), nullable=False, default="v1")
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<PlanRow(id={self.id}, name={self.name}, version={self.version})>"


class TeamRow(Base):
    __tablename__ = "oncall_teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<TeamRow(id={self.id}, name={self.name})>"


class BindingRow(Base):
    __tablename__ = "oncall_bindings"

    customer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    plan_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<BindingRow(customer_id={self.customer_id}, plan_id={self.plan_id})>"


class ScheduleSliceRow(Base):
    __tablename__ = "schedule_slices"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    plan_id: Mapped[str] = mapped_column(String(64), nullable=False)
    plan_version: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    start_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    generated_at_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_schedule_slices_customer_start", "customer_id", "start_utc"),
        Index("ix_schedule_slices_customer_end", "customer_id", "end_utc"),
    )

    def __repr__(self) -> str:
        return (
            f"<ScheduleSliceRow(id={self.id}, customer_id={self.customer_id}, "
            f"role={self.role}, start_utc={self.start_utc}, end_utc={self.end_utc})>"
        )
