"""
REST API endpoints for on-call coverage.

Read endpoints serve alert escalation and dashboards; regenerate is the
admin trigger after a plan, team, or binding change.
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..domain.models import ScheduleSlice
from ..infra.exceptions import GenerationCancelled, NotFoundError, OnCallError, ValidationError
from ..infra.settings import settings
from ..infra.uow import session as get_session
from ..services.schedule_service import Coverage, OnCallScheduleService
from ..store.sql import SqlDefinitionRepository, SqlSliceRepository

router = APIRouter(prefix="/api/oncall", tags=["oncall"])


def get_service() -> Generator[OnCallScheduleService, None, None]:
    """Schedule service over the SQL stores, one unit of work per request."""
    with get_session() as db:
        definitions = SqlDefinitionRepository(db)
        yield OnCallScheduleService(
            plans=definitions,
            teams=definitions,
            bindings=definitions,
            slices=SqlSliceRepository(db),
        )


# ============================================================================
# Pydantic Models for Request/Response
# ============================================================================


class SliceResponse(BaseModel):
    """One contiguous stretch of responsibility."""
    id: str
    customer_id: str
    plan_id: str
    plan_version: str
    role: str
    team_id: str
    member_ids: list[str]
    start_utc: datetime
    end_utc: datetime
    generated_at_utc: datetime


class CoverageResponse(BaseModel):
    customer_id: str
    at_utc: datetime
    has_coverage: bool
    primary: SliceResponse | None = None
    backup: SliceResponse | None = None


class ScheduleResponse(BaseModel):
    customer_id: str
    time_zone: str
    count: int
    slices: list[SliceResponse]
    coverage: CoverageResponse


class RegenerateRequest(BaseModel):
    """Request model for regenerating a customer's schedule."""
    from_utc: datetime | None = Field(None, description="Window start (default now)")
    to_utc: datetime | None = Field(None, description="Window end (default start + horizon)")


class RegenerateResponse(BaseModel):
    customer_id: str
    from_utc: datetime
    to_utc: datetime
    deleted: int
    written: int


class EscalationResponse(BaseModel):
    ack_timeout_seconds: int
    max_retries: int
    retry_delay_seconds: int


class TargetsResponse(BaseModel):
    """Who to page right now for a customer."""
    customer_id: str
    plan_id: str | None
    primary_member_ids: list[str]
    backup_member_ids: list[str]
    escalation: EscalationResponse | None


# ============================================================================
# Helpers
# ============================================================================


def _as_utc(value: datetime | None) -> datetime | None:
    # Query strings without an offset are taken as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _slice_response(item: ScheduleSlice | None) -> SliceResponse | None:
    if item is None:
        return None
    return SliceResponse(
        id=item.id,
        customer_id=item.customer_id,
        plan_id=item.plan_id,
        plan_version=item.plan_version,
        role=item.role.value,
        team_id=item.team_id,
        member_ids=list(item.member_ids),
        start_utc=item.start_utc,
        end_utc=item.end_utc,
        generated_at_utc=item.generated_at_utc,
    )


def _coverage_response(customer_id: str, at_utc: datetime, coverage: Coverage) -> CoverageResponse:
    return CoverageResponse(
        customer_id=customer_id,
        at_utc=at_utc,
        has_coverage=coverage.has_coverage,
        primary=_slice_response(coverage.primary_slice),
        backup=_slice_response(coverage.backup_slice),
    )


def _http_error(exc: OnCallError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, GenerationCancelled):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/customers/{customer_id}/coverage", response_model=CoverageResponse)
def get_coverage(
    customer_id: str,
    at: datetime | None = Query(None, description="Instant to check (default now)"),
    service: OnCallScheduleService = Depends(get_service),
) -> CoverageResponse:
    """Primary and backup slices covering an instant."""
    at_utc = _as_utc(at) or service.now_utc()
    try:
        coverage = service.get_current_coverage(customer_id, at_utc)
    except OnCallError as e:
        raise _http_error(e)
    return _coverage_response(customer_id, at_utc, coverage)


@router.get("/customers/{customer_id}/schedule", response_model=ScheduleResponse)
def get_schedule(
    customer_id: str,
    from_utc: datetime | None = Query(None, alias="from", description="Window start (default now)"),
    to_utc: datetime | None = Query(None, alias="to", description="Window end (default start + 7 days)"),
    limit: int = Query(500, ge=1, le=5000),
    service: OnCallScheduleService = Depends(get_service),
) -> ScheduleResponse:
    """Stored slices for a window, falling back to the default horizon when empty."""
    start = _as_utc(from_utc) or service.now_utc()
    end = _as_utc(to_utc) or start + timedelta(days=7)
    try:
        view = service.get_schedule(customer_id, start, end, limit=limit)
    except OnCallError as e:
        raise _http_error(e)
    return ScheduleResponse(
        customer_id=customer_id,
        time_zone=view.time_zone,
        count=len(view.slices),
        slices=[_slice_response(item) for item in view.slices],
        coverage=_coverage_response(customer_id, service.now_utc(), view.coverage),
    )


@router.post("/customers/{customer_id}/regenerate", response_model=RegenerateResponse)
def regenerate(
    customer_id: str,
    body: RegenerateRequest | None = None,
    service: OnCallScheduleService = Depends(get_service),
) -> RegenerateResponse:
    """Replace future slices for a customer with a fresh generation run."""
    body = body or RegenerateRequest()
    start = _as_utc(body.from_utc) or service.now_utc()
    end = _as_utc(body.to_utc) or start + timedelta(days=settings.horizon_days)
    try:
        outcome = service.regenerate(customer_id, start, end)
    except OnCallError as e:
        raise _http_error(e)
    return RegenerateResponse(
        customer_id=outcome.customer_id,
        from_utc=outcome.from_utc,
        to_utc=outcome.to_utc,
        deleted=outcome.deleted,
        written=outcome.written,
    )


@router.get("/customers/{customer_id}/targets", response_model=TargetsResponse)
def get_targets(
    customer_id: str,
    at: datetime | None = Query(None, description="Instant to check (default now)"),
    service: OnCallScheduleService = Depends(get_service),
) -> dict[str, Any]:
    """Member ids to page and the escalation policy that applies."""
    try:
        targets = service.get_on_call_targets(customer_id, _as_utc(at))
    except OnCallError as e:
        raise _http_error(e)
    escalation = targets.escalation
    return {
        "customer_id": targets.customer_id,
        "plan_id": targets.plan_id,
        "primary_member_ids": list(targets.primary_member_ids),
        "backup_member_ids": list(targets.backup_member_ids),
        "escalation": None
        if escalation is None
        else {
            "ack_timeout_seconds": int(escalation.ack_timeout.total_seconds()),
            "max_retries": escalation.max_retries,
            "retry_delay_seconds": int(escalation.retry_delay.total_seconds()),
        },
    }
