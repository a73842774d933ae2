"""Output helpers shared by the command wrappers (human text or --json)."""

from __future__ import annotations

import json
from typing import Any

import typer

from ..domain.models import ScheduleSlice
from .commands._ops.service_scope import error_code_for


def emit_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def fail(exc: Exception, json_output: bool, action: str) -> typer.Exit:
    """Report ``exc`` and return the Exit to raise."""
    if json_output:
        emit_json({"status": "error", "code": error_code_for(exc), "message": str(exc)})
    else:
        typer.echo(f"Error {action}: {exc}", err=True)
    return typer.Exit(1)


def format_slice(item: ScheduleSlice) -> str:
    members = ", ".join(item.member_ids) if item.member_ids else "(nobody)"
    return (
        f"  {item.start_utc.isoformat()} - {item.end_utc.isoformat()}  "
        f"{item.role.value:<9} team={item.team_id}  members={members}"
    )
