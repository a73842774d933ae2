"""
Main CLI application using Typer with router-based command dispatch.

Operator entry point for helios-oncall: loads definitions, generates and
extends schedules, and answers "who is on call" from the stored slices.
Every command accepts --json for machine-readable output.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import coverage, definitions, horizon, plan, schedule
from .router import get_router

app = typer.Typer(help="Helios on-call schedule operator CLI")


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
):
    """Helios on-call schedule operator CLI."""
    configure_logging(log_level)


router = get_router(app)

router.register(
    "definitions",
    definitions.app,
    help_text="Plan, team, and binding definition operations",
)

router.register(
    "plan",
    plan.app,
    help_text="Plan validation operations",
)

router.register(
    "schedule",
    schedule.app,
    help_text="Schedule generation and inspection operations",
)

router.register(
    "coverage",
    coverage.app,
    help_text="Current coverage lookups",
)

router.register(
    "horizon",
    horizon.app,
    help_text="Schedule horizon upkeep",
)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
