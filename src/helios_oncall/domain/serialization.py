"""JSON document (de)serialization for on-call definitions.

Uses pydantic TypeAdapters over the frozen dataclasses, so stored payloads
and loaded YAML/JSON documents are validated the same way.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from .models import CustomerBinding, Plan, ScheduleSlice, Team

PLAN_ADAPTER: TypeAdapter[Plan] = TypeAdapter(Plan)
TEAM_ADAPTER: TypeAdapter[Team] = TypeAdapter(Team)
BINDING_ADAPTER: TypeAdapter[CustomerBinding] = TypeAdapter(CustomerBinding)
SLICE_ADAPTER: TypeAdapter[ScheduleSlice] = TypeAdapter(ScheduleSlice)

WEEKDAY_NAMES = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}


def _normalize_weekdays(payload: dict[str, Any]) -> dict[str, Any]:
    """Accept weekday names ("Monday", "mon") as well as 0..6."""
    windows = payload.get("on_hours")
    if not windows:
        return payload
    normalized = []
    for window in windows:
        day = window.get("weekday") if isinstance(window, dict) else None
        if isinstance(day, str) and day.strip().lower() in WEEKDAY_NAMES:
            window = {**window, "weekday": WEEKDAY_NAMES[day.strip().lower()]}
        normalized.append(window)
    return {**payload, "on_hours": normalized}


def plan_from_payload(payload: dict[str, Any]) -> Plan:
    return PLAN_ADAPTER.validate_python(_normalize_weekdays(payload))


def plan_to_payload(plan: Plan) -> dict[str, Any]:
    return PLAN_ADAPTER.dump_python(plan, mode="json")


def team_from_payload(payload: dict[str, Any]) -> Team:
    return TEAM_ADAPTER.validate_python(payload)


def team_to_payload(team: Team) -> dict[str, Any]:
    return TEAM_ADAPTER.dump_python(team, mode="json")


def binding_from_payload(payload: dict[str, Any]) -> CustomerBinding:
    return BINDING_ADAPTER.validate_python(payload)


def binding_to_payload(binding: CustomerBinding) -> dict[str, Any]:
    return BINDING_ADAPTER.dump_python(binding, mode="json")


def slice_to_payload(item: ScheduleSlice) -> dict[str, Any]:
    return SLICE_ADAPTER.dump_python(item, mode="json")
