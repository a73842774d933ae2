"""
Definition loading from YAML/JSON documents.

A document may hold any of three top-level lists::

    plans:    [ {id, name, time_zone, on_hours: [...], rotation: {...}, ...} ]
    teams:    [ {id, name, members: [{user_id, order}], ...} ]
    bindings: [ {customer_id, plan_id, on_hours_team_id, ...} ]

A directory is scanned for *.yaml / *.yml / *.json files (skipping _ prefixed
partials) in name order; later files overwrite earlier entries with the same id.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..domain.models import CustomerBinding, Plan, Team
from ..domain.serialization import binding_from_payload, plan_from_payload, team_from_payload
from ..infra.exceptions import ValidationError
from ..store.protocols import BindingRepository, PlanRepository, TeamRepository

_logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = (".yaml", ".yml", ".json")


@dataclass
class DefinitionDocument:
    plans: list[Plan] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)
    bindings: list[CustomerBinding] = field(default_factory=list)

    def merge(self, other: DefinitionDocument) -> None:
        self.plans.extend(other.plans)
        self.teams.extend(other.teams)
        self.bindings.extend(other.bindings)


@dataclass
class LoadResult:
    plans: int = 0
    teams: int = 0
    bindings: int = 0
    files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)


def _read_raw(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path.name}: expected a mapping at the top level")
    return data


def _entries(data: dict[str, Any], key: str, source: str) -> list[dict[str, Any]]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise ValidationError(f"{source}: '{key}' must be a list")
    return entries


def parse_document(data: dict[str, Any], source: str = "<document>") -> DefinitionDocument:
    """Validate a raw mapping into domain values."""
    try:
        return DefinitionDocument(
            plans=[plan_from_payload(p) for p in _entries(data, "plans", source)],
            teams=[team_from_payload(t) for t in _entries(data, "teams", source)],
            bindings=[binding_from_payload(b) for b in _entries(data, "bindings", source)],
        )
    except PydanticValidationError as e:
        raise ValidationError(f"{source}: invalid definition: {e}") from e


def load_document(path: Path | str) -> DefinitionDocument:
    """Load a single YAML or JSON definitions file."""
    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"Definitions file not found: {path}")
    return parse_document(_read_raw(path), source=path.name)


def discover_files(path: Path | str) -> list[Path]:
    path = Path(path)
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise ValidationError(f"Definitions path not found: {path}")
    return sorted(
        p
        for p in path.iterdir()
        if p.is_file() and p.suffix.lower() in DEFINITION_SUFFIXES and not p.name.startswith("_")
    )


def load_definitions(
    path: Path | str,
    plans: PlanRepository,
    teams: TeamRepository,
    bindings: BindingRepository,
    *,
    skip_invalid: bool = False,
) -> LoadResult:
    """Load a file or directory of definitions into the given repositories.

    With ``skip_invalid`` a bad file in a directory is logged and skipped;
    otherwise the first bad file raises ValidationError before anything is
    written.
    """
    result = LoadResult()
    combined = DefinitionDocument()
    for file_path in discover_files(path):
        try:
            combined.merge(load_document(file_path))
        except ValidationError as e:
            if not skip_invalid:
                raise
            _logger.warning("Skipping invalid definitions file %s: %s", file_path.name, e)
            result.skipped_files.append(file_path.name)
            continue
        result.files.append(file_path.name)

    # Plans and teams first so bindings never point at something not yet stored.
    for plan in combined.plans:
        plans.upsert_plan(plan)
    for team in combined.teams:
        teams.upsert_team(team)
    for binding in combined.bindings:
        bindings.upsert_binding(binding)

    result.plans = len(combined.plans)
    result.teams = len(combined.teams)
    result.bindings = len(combined.bindings)
    _logger.info(
        "Loaded %d plans, %d teams, %d bindings from %s",
        result.plans,
        result.teams,
        result.bindings,
        path,
    )
    return result
