"""
Tests for CLI commands — add, update, list, log, health and global options.
"""

import json
import textwrap
from pathlib import Path

import click
import pytest
from click.testing import CliRunner
from helpers import clone_creates_dir, script_repo

from plugpack.adapters.mock import MockExecutor
from plugpack.adapters.vcs.git import GitAdapter
from plugpack.core.persistence.update_log import UpdateLog
from plugpack.main import cli


@pytest.fixture
def git(monkeypatch: pytest.MonkeyPatch, mock_executor: MockExecutor) -> MockExecutor:
    """Route every git command the CLI runs to the mock executor."""
    monkeypatch.setattr(GitAdapter, "is_available", lambda self: True)
    monkeypatch.setattr("plugpack.core.manager.SubprocessExecutor", lambda: mock_executor)
    monkeypatch.setattr("plugpack.core.observability.health.SubprocessExecutor", lambda: mock_executor)
    return mock_executor


def _make_config(tmp_path: Path, plugins: str = "[]") -> Path:
    """Create a plugpack.yml with its root and log under ``tmp_path``."""
    content = textwrap.dedent(f"""\
        root: {tmp_path / "opt"}
        log: {tmp_path / "plugpack.log"}
        jobs:
          concurrency: 2
          timeout: 5
        plugins: {plugins}
    """)
    config = tmp_path / "plugpack.yml"
    config.write_text(content)
    return config


def _invoke(config: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config), *args])


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "git-hosted plugins" in result.output
        for command in ("add", "update", "list", "log", "health"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_bad_config(self, tmp_path: Path):
        config = tmp_path / "plugpack.yml"
        config.write_text("root: [unclosed\n")
        result = _invoke(config, "add")
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output


class TestAddCommand:
    def test_nothing_to_add(self, tmp_path: Path):
        result = _invoke(_make_config(tmp_path), "add")
        assert result.exit_code == 0
        assert "No plugins to add." in result.output

    def test_already_installed_json(self, tmp_path: Path):
        config = _make_config(tmp_path)
        (tmp_path / "opt" / "a").mkdir(parents=True)
        result = _invoke(config, "-q", "add", "--json", "https://example.com/a@v1.0.0")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["installed"] == []
        assert data["plugins"][0]["name"] == "a"
        assert data["plugins"][0]["version"] == "v1.0.0"

    def test_installs_configured_and_given(self, tmp_path: Path, git: MockExecutor):
        config = _make_config(tmp_path, plugins="[https://example.com/a]")
        clone_creates_dir(git)
        for name in ("a", "b"):
            script_repo(git, tmp_path / "opt" / name, refs={"origin/main": "1234567"})

        result = _invoke(config, "add", "user/b")

        assert result.exit_code == 0
        assert "✓ a" in result.output
        assert "✓ b" in result.output
        sources = sorted(c.command[-2] for c in git.calls_for("clone"))
        assert sources == ["https://example.com/a", "https://github.com/user/b"]

    def test_install_failure_exits_1(self, tmp_path: Path, git: MockExecutor):
        config = _make_config(tmp_path)
        git.set_failure(("clone",), stderr="fatal: repository not found", returncode=128)
        result = _invoke(config, "add", "https://example.com/gone")
        assert result.exit_code == 1
        assert "✗ gone: ERROR CODE 128" in result.output


class TestUpdateCommand:
    def _setup(self, tmp_path: Path, git: MockExecutor) -> Path:
        config = _make_config(tmp_path, plugins="[https://example.com/a]")
        path = tmp_path / "opt" / "a"
        path.mkdir(parents=True)
        script_repo(git, path, head="a000000", tags=["v1.0.0"], refs={"v1.0.0": "a111111"})
        return config

    def test_nothing_to_update(self, tmp_path: Path):
        result = _invoke(_make_config(tmp_path), "update")
        assert result.exit_code == 0
        assert "Nothing to update." in result.output

    def test_force(self, tmp_path: Path, git: MockExecutor):
        config = self._setup(tmp_path, git)
        result = _invoke(config, "update", "--force")
        assert result.exit_code == 0
        assert "✅ Updated 1 plugin(s)" in result.output
        assert [c.command[-1] for c in git.calls_for("checkout")] == ["a111111"]
        assert UpdateLog(tmp_path / "plugpack.log").entry_count() == 1

    def test_editor_quit_cancels(self, tmp_path: Path, git: MockExecutor, monkeypatch):
        config = self._setup(tmp_path, git)
        shown = []
        monkeypatch.setattr(click, "edit", lambda text, **kwargs: shown.append(text))
        result = _invoke(config, "update", "--offline")
        assert result.exit_code == 0
        assert "Update cancelled." in result.output
        assert "## a" in shown[0]
        assert not git.calls_for("fetch")
        assert not git.calls_for("checkout")

    def test_editor_save_applies(self, tmp_path: Path, git: MockExecutor, monkeypatch):
        config = self._setup(tmp_path, git)
        monkeypatch.setattr(click, "edit", lambda text, **kwargs: text)
        result = _invoke(config, "update")
        assert result.exit_code == 0
        assert "✅ Updated 1 plugin(s)" in result.output

    def test_json_is_pending(self, tmp_path: Path, git: MockExecutor):
        config = self._setup(tmp_path, git)
        result = _invoke(config, "-q", "update", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["outcome"] == "pending_confirmation"
        assert data["decisions"][0]["target"] == "a111111"
        assert data["decisions"][0]["has_update"] is True


class TestListCommand:
    def test_list_json(self, tmp_path: Path, git: MockExecutor):
        config = _make_config(tmp_path, plugins="[https://example.com/a]")
        (tmp_path / "opt" / "a").mkdir(parents=True)
        (tmp_path / "opt" / "stray").mkdir()
        script_repo(git, tmp_path / "opt" / "a", tags=["v1.0.0"])

        result = _invoke(config, "-q", "list", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [p["spec"]["name"] for p in data["plugins"]] == ["a", "stray"]
        assert data["plugins"][0]["refs"] == ["v1.0.0", "main"]
        assert data["plugins"][1]["was_added"] is False

    def test_list_empty(self, tmp_path: Path):
        result = _invoke(_make_config(tmp_path), "list")
        assert result.exit_code == 0
        assert "No plugins." in result.output


class TestLogCommand:
    def test_empty(self, tmp_path: Path):
        result = _invoke(_make_config(tmp_path), "log")
        assert result.exit_code == 0
        assert "No updates logged in" in result.output

    def test_recent_blocks(self, tmp_path: Path):
        config = _make_config(tmp_path)
        log = UpdateLog(tmp_path / "plugpack.log")
        log.append("# Updates\n\n## old", timestamp="2024-01-01 00:00:00")
        log.append("# Updates\n\n## new", timestamp="2024-01-02 00:00:00")

        result = _invoke(config, "log")
        assert "2024-01-02 00:00:00" in result.output
        assert "## old" not in result.output

        result = _invoke(config, "log", "-n", "2")
        assert "## old" in result.output


class TestHealthCommand:
    def test_health_json(self, tmp_path: Path, git: MockExecutor):
        git.set_output(("version",), "git version 2.45.0")
        result = _invoke(_make_config(tmp_path), "health", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "healthy"
        components = {c["name"]: c for c in data["components"]}
        assert components["git"]["message"] == "git version 2.45.0"
        assert components["package_root"]["message"] == "Not created yet"

    def test_health_without_git(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(GitAdapter, "is_available", lambda self: False)
        result = _invoke(_make_config(tmp_path), "health")
        assert result.exit_code == 1
        assert "UNHEALTHY" in result.output
