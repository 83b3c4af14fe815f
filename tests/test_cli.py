"""Tests for the click CLI."""

import pytest
from unittest.mock import patch
from click.testing import CliRunner

from main import cli
from conftest import DEFAULT_HOURS, DEFAULT_TASKS, ScriptedProvider, decomposition_json, estimation_json


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def db(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _invoke(runner, db, *args):
    return runner.invoke(cli, ["--database", db, *args], catch_exceptions=False)


def _seed(runner, db):
    _invoke(runner, db, "add", "--project", "1", "--title", "Checkout epic", "--epic")
    _invoke(runner, db, "add", "--project", "1", "--title", "Payment form", "--parent", "1", "--hours", "8", "--assignee", "alice")
    _invoke(runner, db, "add", "--project", "1", "--title", "Order summary", "--parent", "1", "--hours", "4")
    _invoke(runner, db, "add", "--project", "1", "--title", "Card tokenisation", "--parent", "2", "--hours", "16")


class TestWorkItemCommands:

    def test_add(self, runner, db):
        result = _invoke(runner, db, "add", "--project", "1", "--title", "Checkout epic")
        assert result.exit_code == 0
        assert "Created issue 1" in result.output

    def test_add_with_missing_parent_fails(self, runner, db):
        result = _invoke(runner, db, "add", "--project", "1", "--title", "Orphan", "--parent", "9")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rollup(self, runner, db):
        _seed(runner, db)
        result = _invoke(runner, db, "rollup", "1")
        assert result.exit_code == 0
        assert "28.0h" in result.output
        assert "Updated issue 1" in result.output

    def test_rollup_leaf(self, runner, db):
        _seed(runner, db)
        result = _invoke(runner, db, "rollup", "4")
        assert result.exit_code == 0
        assert "nothing to roll up" in result.output

    def test_rollup_unknown(self, runner, db):
        result = _invoke(runner, db, "rollup", "42")
        assert result.exit_code == 1
        assert "issue with ID 42 not found" in result.output

    def test_rollup_project(self, runner, db):
        _seed(runner, db)
        result = _invoke(runner, db, "rollup-project", "1")
        assert result.exit_code == 0
        assert "Updated 2 parent issue(s)" in result.output
        assert "44.0h" in result.output

    def test_deps(self, runner, db):
        _seed(runner, db)
        _invoke(runner, db, "link", "3", "2")
        result = _invoke(runner, db, "deps", "2")
        assert result.exit_code == 0
        assert "Order summary" in result.output
        assert "8.8h" in result.output

    def test_tree(self, runner, db):
        _seed(runner, db)
        result = _invoke(runner, db, "tree", "4")
        assert result.exit_code == 0
        assert "Checkout epic" in result.output
        assert "Card tokenisation" in result.output
        assert "Order summary" not in result.output


class TestEstimateCommands:

    DESCRIPTION = "Customers need to request partial refunds through the public API"

    def test_estimate_item_and_history(self, runner, db):
        _invoke(runner, db, "add", "--project", "1", "--title", "Add refund endpoint", "--description", self.DESCRIPTION)
        provider = ScriptedProvider([decomposition_json(*DEFAULT_TASKS), estimation_json(*DEFAULT_HOURS)])

        with patch("agents.base_agent.get_provider", return_value=provider):
            result = _invoke(runner, db, "estimate", "1", "--user-id", "7")

        assert result.exit_code == 0
        assert "20.8 hours" in result.output
        assert "version 1" in result.output

        history = _invoke(runner, db, "history", "1")
        assert history.exit_code == 0
        assert "manual_regenerate" in history.output

        usage = _invoke(runner, db, "usage", "1")
        assert "effort_estimation" in usage.output

    def test_estimate_thin_description(self, runner, db):
        with patch("agents.base_agent.get_provider", return_value=ScriptedProvider()):
            result = _invoke(runner, db, "estimate", "--title", "Fix bug", "--description", "ok")
        assert result.exit_code == 1
        assert "insufficient_description" in result.output

    def test_estimate_short_title(self, runner, db):
        with patch("agents.base_agent.get_provider", return_value=ScriptedProvider()):
            result = _invoke(runner, db, "estimate", "--title", "fix", "--description", self.DESCRIPTION)
        assert result.exit_code == 1
        assert "Title must be at least 5 characters" in result.output

    def test_estimate_needs_target(self, runner, db):
        result = _invoke(runner, db, "estimate")
        assert result.exit_code == 1

    def test_history_empty(self, runner, db):
        _invoke(runner, db, "add", "--project", "1", "--title", "Add refund endpoint")
        result = _invoke(runner, db, "history", "1")
        assert "No estimates recorded" in result.output


class TestProvidersCommand:

    def test_lists_providers(self, runner):
        result = runner.invoke(cli, ["providers"])
        assert result.exit_code == 0
        for name in ("openai", "anthropic", "litellm"):
            assert name in result.output
