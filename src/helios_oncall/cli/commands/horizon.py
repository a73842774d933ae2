from __future__ import annotations

import typer

from ...infra.exceptions import OnCallError
from ...infra.settings import settings
from ...services.horizon import ScheduleHorizonExtender
from ..output import emit_json, fail
from ._ops.service_scope import service_scope

app = typer.Typer(name="horizon", help="Schedule horizon upkeep")


@app.command("run")
def run(
    days: int = typer.Option(settings.horizon_days, "--days", min=1, help="Horizon depth in days"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Run one extension pass over every customer binding.

    Customers without slices are regenerated from today; customers whose
    latest slice ends before the horizon are extended up to it.

    Examples:
        helios-oncall horizon run
        helios-oncall horizon run --days 60 --json
    """
    try:
        with service_scope(db_url) as service:
            report = ScheduleHorizonExtender(service, horizon_days=days).evaluate_once()
    except OnCallError as e:
        raise fail(e, json_output, "running horizon pass")

    if json_output:
        emit_json(
            {
                "status": "ok" if report.errors == 0 else "partial",
                "extended": report.extended,
                "skipped": report.skipped,
                "errors": report.errors,
                "failed_customers": report.failed_customers,
            }
        )
    else:
        typer.echo(
            f"Horizon pass ({days} days): {report.extended} extended, "
            f"{report.skipped} skipped, {report.errors} errors"
        )
        for customer_id in report.failed_customers:
            typer.echo(f"  Failed: {customer_id}", err=True)

    if report.errors:
        raise typer.Exit(1)
