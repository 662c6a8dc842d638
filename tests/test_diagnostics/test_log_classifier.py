"""Tests for log classification."""

from __future__ import annotations

import re
from pathlib import Path

from mcpdoctor.core.models import ClientType, ErrorKind, MCPClient, MCPServer
from mcpdoctor.diagnostics.log_classifier import ErrorPattern, LogClassifier, read_logs

SAMPLE_LOG = """\
2024-05-01T10:00:00.000Z [info] Initializing server...
2024-05-01T10:00:00.100Z [error] spawn python ENOENT
2024-05-01T10:00:01.000Z [error] Error: connect ECONNREFUSED 127.0.0.1:8080
2024-05-01T10:00:02.000Z [error] EACCES: permission denied, open '/etc/secret'
2024-05-01T10:00:03.000Z [error] Error: Cannot find module '@modelcontextprotocol/sdk'
2024-05-01T10:00:04.000Z [error] ModuleNotFoundError: No module named 'mcp'
2024-05-01T10:00:05.000Z [error] SyntaxError: Unexpected token } in JSON at position 42
2024-05-01T10:00:06.000Z [error] Missing required environment variable GITHUB_TOKEN
2024-05-01T10:00:07.000Z [error] Error: Failed to start server
"""


class TestClassify:
    def test_sample_log(self, server: MCPServer):
        errors = LogClassifier().classify(SAMPLE_LOG, server)

        assert [(e.kind, e.message) for e in errors] == [
            (ErrorKind.PATH, 'Command "python" not found in PATH'),
            (ErrorKind.NETWORK, "Connection refused"),
            (ErrorKind.PERMISSION, "Permission denied"),
            (ErrorKind.PATH, "Module not found: @modelcontextprotocol/sdk"),
            (ErrorKind.PATH, "Module not found: mcp"),
            (ErrorKind.CONFIG, "Invalid configuration syntax"),
            (ErrorKind.ENVIRONMENT, "Missing environment variable: GITHUB_TOKEN"),
            (ErrorKind.UNKNOWN, "Failed to start server"),
        ]
        assert all(e.server is server for e in errors)

    def test_details_hold_the_log_line(self):
        errors = LogClassifier().classify("  [error] spawn npx ENOENT  \n")
        assert errors[0].details == "[error] spawn npx ENOENT"
        assert errors[0].fixable is True

    def test_one_error_per_line(self):
        errors = LogClassifier().classify("spawn node ENOENT command not found")
        assert len(errors) == 1

    def test_clean_log(self):
        assert LogClassifier().classify("all good\n\nstill good\n") == []

    def test_windows_not_recognized(self):
        errors = LogClassifier().classify("'uvx' is not recognized as an internal or external command")
        assert errors[0].kind == ErrorKind.PATH
        assert errors[0].message == "Command not found in PATH"

    def test_custom_pattern(self):
        classifier = LogClassifier()
        classifier.add_pattern(
            ErrorPattern(re.compile(r"ETIMEDOUT"), ErrorKind.NETWORK, "Connection timed out", False)
        )

        errors = classifier.classify("Error: connect ETIMEDOUT 10.0.0.1:443")

        assert errors[0].message == "Connection timed out"
        assert errors[0].fixable is False


class TestClientLogs:
    def _client(self, tmp_path: Path, server: MCPServer) -> MCPClient:
        return MCPClient(
            type=ClientType.WINDSURF,
            name="Windsurf",
            config_path=tmp_path / "mcp_config.json",
            servers=[server],
        )

    def test_missing_log_directory_warns(self, tmp_path: Path, server: MCPServer):
        result = LogClassifier().analyze_client_logs(self._client(tmp_path, server), home=tmp_path)

        assert result.errors == []
        assert len(result.warnings) == 1
        assert "No log files found" in result.warnings[0]

    def test_reads_client_log_files(self, tmp_path: Path, server: MCPServer):
        log_dir = tmp_path / ".codeium" / "windsurf" / "logs"
        log_dir.mkdir(parents=True)
        (log_dir / "mcp-main.log").write_text("Error: connect ECONNREFUSED 127.0.0.1:80\n")

        result = LogClassifier().analyze_client_logs(self._client(tmp_path, server), home=tmp_path)

        assert [e.kind for e in result.errors] == [ErrorKind.NETWORK]
        assert result.log_files == [log_dir / "mcp-main.log"]

    def test_server_logs_are_attributed(self, tmp_path: Path, server: MCPServer):
        client = MCPClient(
            type=ClientType.CLAUDE_DESKTOP,
            name="Claude Desktop",
            config_path=tmp_path / "c.json",
            servers=[server],
        )
        classifier = LogClassifier()
        log_dir = Path(classifier.log_file_paths(client, tmp_path)[0]).parent
        log_dir.mkdir(parents=True)
        (log_dir / "mcp-server-S1.log").write_text("spawn python ENOENT\n")

        result = classifier.analyze_client_logs(client, home=tmp_path)

        assert result.errors[0].server is server
        assert result.server_status == {"S1": False}


def test_read_logs_joins_files(tmp_path: Path):
    first = tmp_path / "a.log"
    second = tmp_path / "b.log"
    first.write_text("one")
    second.write_text("two")

    content = read_logs([first, tmp_path / "missing.log", second], separator="|")

    assert content == "one|two"
