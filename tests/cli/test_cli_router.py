"""Tests for CLI command group registration."""

from __future__ import annotations

import pytest
import typer
from typer.testing import CliRunner

from helios_oncall.cli.main import app, router
from helios_oncall.cli.router import CliRouter


def test_all_groups_registered():
    assert router.list_registered_groups() == ["definitions", "plan", "schedule", "coverage", "horizon"]
    assert router.get_registered_groups()["coverage"]["help"] == "Current coverage lookups"


def test_duplicate_group_rejected():
    local = CliRouter(typer.Typer())
    local.register("schedule", typer.Typer())
    with pytest.raises(ValueError, match="already registered"):
        local.register("schedule", typer.Typer())


def test_root_help_lists_groups():
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("definitions", "plan", "schedule", "coverage", "horizon"):
        assert name in result.output
