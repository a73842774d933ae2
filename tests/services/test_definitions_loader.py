"""
Tests for loading plan, team, and binding definitions from YAML/JSON.

Verifies:
- YAML documents accept weekday names and ISO times
- JSON documents load the same shapes
- Directories load in name order and skip _ partials and other suffixes
- An invalid file raises ValidationError before anything is written
- skip_invalid logs and skips the bad file instead
"""

from __future__ import annotations

import json
from datetime import date, time, timedelta

import pytest

from helios_oncall.domain.models import RotationCadence, RotationMode
from helios_oncall.infra.exceptions import ValidationError
from helios_oncall.services.definitions import discover_files, load_definitions, load_document, parse_document
from helios_oncall.store.memory import InMemoryDefinitionStore

PLAN_YAML = """
plans:
  - id: plan-ny
    name: New York business hours
    time_zone: America/New_York
    on_hours:
      - {weekday: Monday, local_start: "09:00", local_end: "17:00"}
      - {weekday: fri, local_start: "09:00", local_end: "15:30"}
      - {weekday: 5, local_start: "22:00", local_end: "06:00"}
    holidays: [2026-12-25]
    rotation:
      mode: WholeTeam
      cadence: Weekly
      anchor_date: 2026-01-05
    escalation:
      ack_timeout: 120
      max_retries: 2
      retry_delay: 60
"""

TEAMS_YAML = """
teams:
  - id: team-a
    name: Team A
    members:
      - {user_id: alice, order: 0}
      - {user_id: bob, order: 1, enabled: false}
  - id: team-b
    name: Team B
    members: [{user_id: dave}]
"""

BINDING_JSON = {
    "bindings": [
        {
            "customer_id": "contoso",
            "plan_id": "plan-ny",
            "on_hours_team_id": "team-a",
            "off_hours_team_id": "team-b",
            "backup_team_id": "team-b",
            "customer_overrides": [{"date": "2026-07-04", "skip": True}],
        }
    ]
}


def _write(path, text: str):
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def store():
    return InMemoryDefinitionStore()


def _load(path, store, **kwargs):
    return load_definitions(path, store, store, store, **kwargs)


class TestDocuments:
    """Single-file parsing."""

    def test_yaml_plan(self, tmp_path):
        doc = load_document(_write(tmp_path / "plans.yaml", PLAN_YAML))
        [plan] = doc.plans
        assert plan.time_zone == "America/New_York"
        assert [(w.weekday, w.local_start, w.local_end) for w in plan.on_hours] == [
            (0, time(9), time(17)),
            (4, time(9), time(15, 30)),
            (5, time(22), time(6)),
        ]
        assert plan.on_hours[2].is_overnight
        assert plan.holidays == (date(2026, 12, 25),)
        assert plan.rotation.mode is RotationMode.WHOLE_TEAM
        assert plan.rotation.cadence is RotationCadence.WEEKLY
        assert plan.escalation.ack_timeout == timedelta(minutes=2)
        assert plan.escalation.max_retries == 2

    def test_json_binding(self, tmp_path):
        path = tmp_path / "bindings.json"
        path.write_text(json.dumps(BINDING_JSON), encoding="utf-8")
        [binding] = load_document(path).bindings
        assert binding.customer_id == "contoso"
        assert binding.customer_overrides[0].date == date(2026, 7, 4)
        assert binding.customer_overrides[0].skip is True

    def test_empty_file_is_an_empty_document(self, tmp_path):
        doc = load_document(_write(tmp_path / "empty.yaml", ""))
        assert (doc.plans, doc.teams, doc.bindings) == ([], [], [])

    def test_top_level_list_rejected(self, tmp_path):
        with pytest.raises(ValidationError, match="mapping"):
            load_document(_write(tmp_path / "list.yaml", "- a\n- b\n"))

    def test_unknown_weekday_name_rejected(self):
        data = {"plans": [{"id": "p", "on_hours": [{"weekday": "Funday", "local_start": "09:00", "local_end": "17:00"}]}]}
        with pytest.raises(ValidationError, match="<inline>"):
            parse_document(data, source="<inline>")

    def test_section_must_be_a_list(self):
        with pytest.raises(ValidationError, match="'teams' must be a list"):
            parse_document({"teams": {"id": "t"}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            load_document(tmp_path / "nope.yaml")


class TestLoadDefinitions:
    """Files and directories into the repositories."""

    def test_directory_load(self, tmp_path, store):
        _write(tmp_path / "10-plans.yaml", PLAN_YAML)
        _write(tmp_path / "20-teams.yml", TEAMS_YAML)
        (tmp_path / "30-bindings.json").write_text(json.dumps(BINDING_JSON), encoding="utf-8")
        _write(tmp_path / "_partial.yaml", "teams: [{id: ignored}]")
        _write(tmp_path / "README.md", "not a definition")

        result = _load(tmp_path, store)

        assert result.files == ["10-plans.yaml", "20-teams.yml", "30-bindings.json"]
        assert (result.plans, result.teams, result.bindings) == (1, 2, 1)
        assert store.get_plan("plan-ny") is not None
        assert store.get_team("ignored") is None
        assert store.get_team("team-a").members[1].enabled is False
        assert store.get_binding("contoso").id == "contoso"

    def test_discover_single_file(self, tmp_path):
        path = _write(tmp_path / "_explicit.yaml", TEAMS_YAML)
        assert discover_files(path) == [path]

    def test_later_files_win(self, tmp_path, store):
        _write(tmp_path / "a.yaml", "teams: [{id: t, name: First}]")
        _write(tmp_path / "b.yaml", "teams: [{id: t, name: Second}]")
        _load(tmp_path, store)
        assert store.get_team("t").name == "Second"

    def test_invalid_file_writes_nothing(self, tmp_path, store):
        _write(tmp_path / "a.yaml", TEAMS_YAML)
        _write(tmp_path / "b.yaml", "plans: [{id: p, rotation: {mode: Sideways}}]")
        with pytest.raises(ValidationError, match="b.yaml"):
            _load(tmp_path, store)
        assert store.list_teams() == []

    def test_skip_invalid(self, tmp_path, store):
        _write(tmp_path / "a.yaml", TEAMS_YAML)
        _write(tmp_path / "b.yaml", "plans: [{id: p, rotation: {mode: Sideways}}]")
        result = _load(tmp_path, store, skip_invalid=True)
        assert result.skipped_files == ["b.yaml"]
        assert result.files == ["a.yaml"]
        assert {t.id for t in store.list_teams()} == {"team-a", "team-b"}

    def test_missing_path(self, tmp_path, store):
        with pytest.raises(ValidationError, match="not found"):
            _load(tmp_path / "missing", store)
