"""Tests for the mcp-doctor command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mcpdoctor import __version__
from mcpdoctor.cli.main import cli
from mcpdoctor.clients.backup import BackupManager


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("MCPDOCTOR_HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


def _write_config(path: Path, servers: dict) -> Path:
    path.write_text(json.dumps({"mcpServers": servers}))
    return path


def _write_log(path: Path, *lines: str) -> Path:
    path.write_text("\n".join(lines) + "\n")
    return path


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("diagnose", "fix", "repair", "backup"):
            assert command in result.output


class TestDiagnose:
    def test_shows_plan_without_applying(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "args": ["-y", "fs"]}})
        before = config.read_text()
        log = _write_log(tmp_path / "mcp-server-fs.log", "EACCES: permission denied, open '/root/x'")

        result = CliRunner().invoke(cli, ["diagnose", "--config", str(config), "--log", str(log)])

        assert result.exit_code == 0, result.output
        assert "Permission denied" in result.output
        assert "Fix permission issues" in result.output
        assert config.read_text() == before

    def test_no_fixes(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx"}})
        log = _write_log(tmp_path / "mcp-server-fs.log", "Error: connect ECONNREFUSED 127.0.0.1:80")

        result = CliRunner().invoke(cli, ["diagnose", "--config", str(config), "--log", str(log)])

        assert result.exit_code == 0, result.output
        assert "No fixes available" in result.output

    def test_unknown_server(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx"}})
        log = _write_log(tmp_path / "x.log", "spawn npx ENOENT")

        result = CliRunner().invoke(
            cli, ["diagnose", "--config", str(config), "--log", str(log), "--server", "ghost"]
        )

        assert result.exit_code != 0
        assert "ghost" in result.output


class TestFix:
    def test_fix_all_repairs_config(self, tmp_path: Path, isolated_home: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "args": "server-fs"}})
        log = _write_log(tmp_path / "app.log", "SyntaxError: Unexpected token } in JSON at position 3")

        result = CliRunner().invoke(
            cli,
            ["fix", "--all", "--yes", "--config", str(config), "--log", str(log), "--server", "fs"],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(config.read_text())["mcpServers"]["fs"]["args"] == ["server-fs"]

        manager = BackupManager(isolated_home / "backups")
        manager.initialize()
        assert len(manager.list_backups()) == 1

    def test_fix_all_skips_manual_fixes(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "args": []}})
        before = config.read_text()
        log = _write_log(tmp_path / "app.log", "EACCES: permission denied, open '/x'")

        result = CliRunner().invoke(
            cli,
            ["fix", "--all", "--yes", "--config", str(config), "--log", str(log), "--server", "fs"],
        )

        assert result.exit_code == 0, result.output
        assert "No automatic fixes available" in result.output
        assert config.read_text() == before

    def test_preview_changes_nothing(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "args": "server-fs"}})
        before = config.read_text()
        log = _write_log(tmp_path / "app.log", "SyntaxError: Unexpected token")

        result = CliRunner().invoke(
            cli,
            ["fix", "--preview", "--config", str(config), "--log", str(log), "--server", "fs"],
        )

        assert result.exit_code == 0, result.output
        assert config.read_text() == before

    def test_declined_permission_fix(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "args": []}})
        log = _write_log(tmp_path / "app.log", "EACCES: permission denied, open '/x'")

        result = CliRunner().invoke(
            cli,
            ["fix", "--config", str(config), "--log", str(log), "--server", "fs"],
            input="n\n",
        )

        assert result.exit_code == 0, result.output
        assert "Fix permission issues" in result.output

    def test_clean_logs(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx"}})
        log = _write_log(tmp_path / "app.log", "server started")

        result = CliRunner().invoke(cli, ["fix", "--config", str(config), "--log", str(log)])

        assert result.exit_code == 0, result.output


class TestRepair:
    def test_repairs_structure(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx", "env": []}})

        result = CliRunner().invoke(cli, ["repair", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert "Repaired" in result.output
        assert json.loads(config.read_text())["mcpServers"]["fs"]["env"] == {}

    def test_valid_config(self, tmp_path: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx"}})

        result = CliRunner().invoke(cli, ["repair", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert "No repair needed" in result.output

    def test_missing_config_is_created(self, tmp_path: Path):
        config = tmp_path / "new" / "c.json"

        result = CliRunner().invoke(cli, ["repair", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert "mcpServers" in json.loads(config.read_text())


class TestBackup:
    def test_create_list_restore(self, tmp_path: Path, isolated_home: Path):
        config = _write_config(tmp_path / "c.json", {"fs": {"command": "npx"}})
        original = config.read_text()
        runner = CliRunner()

        created = runner.invoke(cli, ["backup", "create", "--config", str(config)])
        assert created.exit_code == 0, created.output

        listed = runner.invoke(cli, ["backup", "list", "--all"])
        assert listed.exit_code == 0, listed.output

        manager = BackupManager(isolated_home / "backups")
        manager.initialize()
        (info,) = manager.list_backups()

        config.write_text("{}")
        restored = runner.invoke(cli, ["backup", "restore", info.id, "--yes"])

        assert restored.exit_code == 0, restored.output
        assert config.read_text() == original

    def test_restore_unknown(self):
        result = CliRunner().invoke(cli, ["backup", "restore", "nope", "--yes"])
        assert result.exit_code == 1
        assert "Backup not found" in result.output

    def test_create_without_config(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["backup", "create", "--config", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
