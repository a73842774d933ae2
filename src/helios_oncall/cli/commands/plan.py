from __future__ import annotations

from datetime import timedelta

import typer

from ...infra.exceptions import OnCallError
from ...scheduling.clock import MasterClock
from ..output import emit_json, fail
from ._ops.service_scope import parse_instant, service_scope

app = typer.Typer(name="plan", help="Plan validation operations")


@app.command("validate")
def validate(
    customer_id: str = typer.Argument(..., help="Customer whose bound plan to check"),
    from_utc: str | None = typer.Option(None, "--from", help="Window start (ISO-8601, default now)"),
    days: int = typer.Option(7, "--days", min=1, help="Window length in days"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Dry-run generation in strict mode and report configuration problems.

    Nothing is written. Reports unknown time zones, override teams that do
    not exist, teams without enabled members, and plans without windows.

    Examples:
        helios-oncall plan validate contoso
        helios-oncall plan validate contoso --from 2026-03-01 --days 31 --json
    """
    try:
        start = parse_instant(from_utc, option="--from") if from_utc else MasterClock().now_utc()
        with service_scope(db_url) as service:
            report = service.validate_plan(customer_id, start, start + timedelta(days=days))
    except OnCallError as e:
        raise fail(e, json_output, "validating plan")

    if json_output:
        emit_json(
            {
                "status": "ok" if report.ok else "invalid",
                "customer_id": report.customer_id,
                "plan_id": report.plan_id,
                "slice_count": report.slice_count,
                "problems": list(report.problems),
            }
        )
    elif report.ok:
        typer.echo(f"Plan {report.plan_id} is valid ({report.slice_count} slices over {days} days)")
    else:
        typer.echo(f"Plan {report.plan_id} has {len(report.problems)} problem(s):")
        for problem in report.problems:
            typer.echo(f"  - {problem}")

    if not report.ok:
        raise typer.Exit(2)
