from __future__ import annotations

import typer

from ...domain.serialization import slice_to_payload
from ...infra.exceptions import OnCallError
from ..output import emit_json, fail, format_slice
from ._ops.service_scope import parse_instant, service_scope

app = typer.Typer(name="coverage", help="Current coverage lookups")


@app.command("now")
def coverage_now(
    customer_id: str = typer.Argument(..., help="Customer to look up"),
    at: str | None = typer.Option(None, "--at", help="Instant to check (ISO-8601, default now)"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the primary and backup slices covering an instant.

    Examples:
        helios-oncall coverage now contoso
        helios-oncall coverage now contoso --at 2026-03-09T15:00:00Z --json
    """
    try:
        instant = parse_instant(at, option="--at") if at else None
        with service_scope(db_url) as service:
            coverage = service.get_current_coverage(customer_id, instant)
    except OnCallError as e:
        raise fail(e, json_output, "looking up coverage")

    primary, backup = coverage.primary_slice, coverage.backup_slice
    if json_output:
        emit_json(
            {
                "status": "ok",
                "customer_id": customer_id,
                "has_coverage": coverage.has_coverage,
                "primary": slice_to_payload(primary) if primary is not None else None,
                "backup": slice_to_payload(backup) if backup is not None else None,
            }
        )
        return

    if not coverage.has_coverage:
        typer.echo(f"No coverage for {customer_id}")
        return
    typer.echo(f"Coverage for {customer_id}:")
    typer.echo("Primary:" if primary is not None else "Primary: none")
    if primary is not None:
        typer.echo(format_slice(primary))
    typer.echo("Backup:" if backup is not None else "Backup: none")
    if backup is not None:
        typer.echo(format_slice(backup))


@app.command("targets")
def targets(
    customer_id: str = typer.Argument(..., help="Customer to look up"),
    at: str | None = typer.Option(None, "--at", help="Instant to check (ISO-8601, default now)"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show who would be paged and with which escalation policy.

    Examples:
        helios-oncall coverage targets contoso --json
    """
    try:
        instant = parse_instant(at, option="--at") if at else None
        with service_scope(db_url) as service:
            result = service.get_on_call_targets(customer_id, instant)
    except OnCallError as e:
        raise fail(e, json_output, "resolving on-call targets")

    escalation = result.escalation
    if json_output:
        emit_json(
            {
                "status": "ok",
                "customer_id": result.customer_id,
                "plan_id": result.plan_id,
                "primary_member_ids": list(result.primary_member_ids),
                "backup_member_ids": list(result.backup_member_ids),
                "escalation": None
                if escalation is None
                else {
                    "ack_timeout_seconds": int(escalation.ack_timeout.total_seconds()),
                    "max_retries": escalation.max_retries,
                    "retry_delay_seconds": int(escalation.retry_delay.total_seconds()),
                },
            }
        )
        return

    if not result.has_targets:
        typer.echo(f"Nobody is on call for {customer_id}")
        return
    typer.echo(f"On call for {customer_id} (plan {result.plan_id}):")
    typer.echo(f"  Primary: {', '.join(result.primary_member_ids) or 'none'}")
    typer.echo(f"  Backup: {', '.join(result.backup_member_ids) or 'none'}")
    if escalation is not None:
        typer.echo(
            f"  Escalation: ack within {escalation.ack_timeout}, "
            f"{escalation.max_retries} retries every {escalation.retry_delay}"
        )
