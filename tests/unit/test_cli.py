"""Unit tests for CLI commands that need no live Directus instance."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from directus_sync.domain.models.import_log import ImportLogEntry
from directus_sync.infrastructure.adapters.audit_log import write_audit_log
from directus_sync.infrastructure.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Commands install their own handler bound to the runner's stream."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_instances(tmp_path, monkeypatch):
    """Working directory without config and no instance variables set."""
    monkeypatch.chdir(tmp_path)
    for key in ("DIRECTUS_SOURCE_URL", "DIRECTUS_SOURCE_TOKEN", "DIRECTUS_TARGET_URL", "DIRECTUS_TARGET_TOKEN"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path


def test_log_analyze_json(tmp_path):
    """The analysis of an audit file is printed as JSON."""
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    path = write_audit_log(
        [
            ImportLogEntry(start, "import_start"),
            ImportLogEntry(start + timedelta(seconds=1), "item_import_failed", {"error": "boom"}),
            ImportLogEntry(start + timedelta(seconds=2), "import_complete"),
        ],
        tmp_path,
        "run-1",
    )

    result = runner.invoke(app, ["log", "analyze", str(path), "--json"])

    assert result.exit_code == 0, result.output
    assert '"total_steps": 3' in result.output
    assert '"duration_ms": 2000' in result.output


def test_log_analyze_table(tmp_path):
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    path = write_audit_log([ImportLogEntry(start, "item_import_failed", {"error": "boom"})], tmp_path, "run-2")

    result = runner.invoke(app, ["log", "analyze", str(path)])

    assert result.exit_code == 0, result.output
    assert "item_import_failed" in result.output
    assert "boom" in result.output


def test_log_analyze_missing_file(tmp_path):
    result = runner.invoke(app, ["log", "analyze", str(tmp_path / "missing.jsonl")])

    assert result.exit_code == 1
    assert "Audit log not found" in result.output


def test_validate_token_without_configuration(no_instances):
    result = runner.invoke(app, ["validate", "token", "--role", "source"])

    assert result.exit_code == 1
    assert "Some validation checks failed" in result.output


def test_validate_rejects_unknown_role(no_instances):
    result = runner.invoke(app, ["validate", "token", "--role", "both"])

    assert result.exit_code == 1
    assert "Unknown role" in result.output


def test_sync_run_requires_configured_instances(no_instances):
    result = runner.invoke(app, ["sync", "run", "--collection", "articles", "--no-audit"])

    assert result.exit_code == 1
    assert "not configured" in result.output


def test_bundle_import_missing_bundle(no_instances):
    result = runner.invoke(app, ["bundle", "import", "--bundle", "nowhere.zip"])

    assert result.exit_code == 1
    assert "Bundle not found" in result.output
