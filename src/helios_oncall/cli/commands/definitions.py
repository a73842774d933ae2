from __future__ import annotations

import typer

from ...infra.exceptions import OnCallError
from ...services.definitions import load_definitions
from ...store.sql import SqlDefinitionRepository
from ..output import emit_json, fail
from ._ops.service_scope import db_scope

app = typer.Typer(name="definitions", help="Plan, team, and binding definition operations")


@app.command("load")
def load(
    path: str = typer.Argument(..., help="YAML/JSON file, or a directory of them"),
    skip_invalid: bool = typer.Option(False, "--skip-invalid", help="Skip bad files in a directory instead of aborting"),
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Load plans, teams, and customer bindings into the database.

    Existing entries with the same id are replaced.

    Examples:
        helios-oncall definitions load ./oncall.yaml
        helios-oncall definitions load ./definitions/ --skip-invalid --json
    """
    try:
        with db_scope(db_url) as db:
            repo = SqlDefinitionRepository(db)
            result = load_definitions(path, repo, repo, repo, skip_invalid=skip_invalid)
    except OnCallError as e:
        raise fail(e, json_output, "loading definitions")

    if json_output:
        emit_json(
            {
                "status": "ok",
                "plans": result.plans,
                "teams": result.teams,
                "bindings": result.bindings,
                "files": result.files,
                "skipped_files": result.skipped_files,
            }
        )
        return
    typer.echo(f"Loaded {result.plans} plans, {result.teams} teams, {result.bindings} bindings")
    for name in result.skipped_files:
        typer.echo(f"  Skipped invalid file: {name}", err=True)
