"""Write-side normalisation shared by every store implementation."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from ..domain.models import CustomerBinding, Plan, ScheduleSlice, Team
from ..infra.exceptions import ValidationError

DEFAULT_PLAN_VERSION = "v1"


def normalize_plan(plan: Plan) -> Plan:
    if not plan.id or not plan.id.strip():
        raise ValidationError("Plan id is required")
    if not plan.version or not plan.version.strip():
        return replace(plan, version=DEFAULT_PLAN_VERSION)
    return plan


def normalize_team(team: Team) -> Team:
    if not team.id or not team.id.strip():
        raise ValidationError("Team id is required")
    return team


def normalize_binding(binding: CustomerBinding) -> CustomerBinding:
    require_customer_id(binding.customer_id)
    if not binding.plan_id:
        raise ValidationError(f"Binding for customer {binding.customer_id!r} has no plan id")
    if (
        binding.effective_from is not None
        and binding.effective_through is not None
        and binding.effective_from > binding.effective_through
    ):
        raise ValidationError("effective_from must be <= effective_through")
    if not binding.id:
        return replace(binding, id=binding.customer_id)
    return binding


def normalize_slice(item: ScheduleSlice) -> ScheduleSlice:
    require_customer_id(item.customer_id)
    return item


def require_customer_id(customer_id: str) -> None:
    if not customer_id or not customer_id.strip():
        raise ValidationError("customer_id is required")


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
