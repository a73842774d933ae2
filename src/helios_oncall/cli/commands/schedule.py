from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfoNotFoundError

import typer

from ...domain.serialization import slice_to_payload
from ...infra.exceptions import OnCallError
from ...infra.settings import settings
from ...scheduling.clock import MasterClock, resolve_timezone
from ...services.schedule_service import GenerationOutcome
from ..output import emit_json, fail
from ._ops.service_scope import parse_instant, service_scope

app = typer.Typer(name="schedule", help="Schedule generation and inspection operations")


def _window(from_utc: str | None, to_utc: str | None, default_days: int) -> tuple[datetime, datetime]:
    start = parse_instant(from_utc, option="--from") if from_utc else MasterClock().now_utc()
    end = parse_instant(to_utc, option="--to") if to_utc else start + timedelta(days=default_days)
    return start, end


def _report(outcome: GenerationOutcome, verb: str, json_output: bool) -> None:
    if json_output:
        emit_json(
            {
                "status": "ok",
                "customer_id": outcome.customer_id,
                "from_utc": outcome.from_utc.isoformat(),
                "to_utc": outcome.to_utc.isoformat(),
                "deleted": outcome.deleted,
                "written": outcome.written,
            }
        )
        return
    typer.echo(f"Schedule {verb} for {outcome.customer_id}:")
    typer.echo(f"  Window: {outcome.from_utc.isoformat()} - {outcome.to_utc.isoformat()}")
    if outcome.deleted:
        typer.echo(f"  Deleted: {outcome.deleted}")
    typer.echo(f"  Written: {outcome.written}")


@app.command("regenerate")
def regenerate(
    customer_id: str = typer.Argument(..., help="Customer to regenerate"),
    from_utc: str | None = typer.Option(None, "--from", help="Window start (ISO-8601, default now)"),
    to_utc: str | None = typer.Option(None, "--to", help="Window end (ISO-8601, default start + horizon)"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Delete slices starting at or after --from and generate fresh ones.

    Examples:
        helios-oncall schedule regenerate contoso
        helios-oncall schedule regenerate contoso --from 2026-03-09T00:00:00Z --to 2026-04-01T00:00:00Z
    """
    try:
        start, end = _window(from_utc, to_utc, settings.horizon_days)
        with service_scope(db_url) as service:
            outcome = service.regenerate(customer_id, start, end)
    except OnCallError as e:
        raise fail(e, json_output, "regenerating schedule")
    _report(outcome, "regenerated", json_output)


@app.command("extend")
def extend(
    customer_id: str = typer.Argument(..., help="Customer to extend"),
    from_utc: str | None = typer.Option(None, "--from", help="Window start (ISO-8601, default latest slice end)"),
    to_utc: str | None = typer.Option(None, "--to", help="Window end (ISO-8601, default start + horizon)"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Generate slices for a window without deleting existing ones.

    Without --from the window starts where the latest stored slice ends.

    Examples:
        helios-oncall schedule extend contoso
        helios-oncall schedule extend contoso --from 2026-04-01 --to 2026-05-01 --json
    """
    try:
        with service_scope(db_url) as service:
            if from_utc:
                start = parse_instant(from_utc, option="--from")
            else:
                latest = service.get_latest_slice(customer_id)
                start = latest.end_utc if latest is not None else MasterClock().now_utc()
            end = parse_instant(to_utc, option="--to") if to_utc else start + timedelta(days=settings.horizon_days)
            outcome = service.extend(customer_id, start, end)
    except OnCallError as e:
        raise fail(e, json_output, "extending schedule")
    _report(outcome, "extended", json_output)


@app.command("show")
def show(
    customer_id: str = typer.Argument(..., help="Customer to show"),
    from_utc: str | None = typer.Option(None, "--from", help="Window start (ISO-8601, default now)"),
    to_utc: str | None = typer.Option(None, "--to", help="Window end (ISO-8601, default start + 7 days)"),
    limit: int = typer.Option(500, "--limit", min=1, help="Maximum number of slices"),
    utc: bool = typer.Option(False, "--utc", help="Print times in UTC instead of the plan's zone"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show stored slices for a window and who is covering right now.

    Examples:
        helios-oncall schedule show contoso
        helios-oncall schedule show contoso --from 2026-03-09 --to 2026-03-10 --json
    """
    try:
        start, end = _window(from_utc, to_utc, 7)
        with service_scope(db_url) as service:
            view = service.get_schedule(customer_id, start, end, limit=limit)
    except OnCallError as e:
        raise fail(e, json_output, "showing schedule")

    if json_output:
        emit_json(
            {
                "status": "ok",
                "customer_id": customer_id,
                "time_zone": view.time_zone,
                "has_coverage": view.coverage.has_coverage,
                "slices": [slice_to_payload(item) for item in view.slices],
            }
        )
        return

    # Human output
    from rich.console import Console
    from rich.table import Table

    console = Console()
    tz = None if utc else _display_zone(view.time_zone)
    zone_name = "UTC" if tz is None else view.time_zone

    table = Table(title=f"Schedule for {customer_id} ({zone_name})")
    table.add_column("Start", style="cyan", no_wrap=True)
    table.add_column("End", style="cyan", no_wrap=True)
    table.add_column("Role", style="magenta", no_wrap=True)
    table.add_column("Team", style="yellow")
    table.add_column("Members", style="green")
    if view.slices:
        for item in view.slices:
            table.add_row(
                _local(item.start_utc, tz),
                _local(item.end_utc, tz),
                item.role.value,
                item.team_id,
                ", ".join(item.member_ids) or "(nobody)",
            )
    else:
        table.add_row("(none)", "", "", "", "")
    console.print(table)
    console.print(f"Covered now: {'yes' if view.coverage.has_coverage else 'no'}")


def _local(value: datetime, tz: tzinfo | None) -> str:
    return (value.astimezone(tz) if tz is not None else value).strftime("%Y-%m-%d %H:%M")


def _display_zone(name: str) -> tzinfo | None:
    try:
        return resolve_timezone(name)
    except ZoneInfoNotFoundError:
        return None
