"""Classifies MCP server log lines into error records."""

from __future__ import annotations

import glob
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

from mcpdoctor.core.models import (
    ClientType,
    ErrorKind,
    ErrorRecord,
    MCPClient,
    MCPServer,
)

logger = logging.getLogger("mcpdoctor.diagnostics")

_SERVER_LOG_NAME = re.compile(r"mcp-server-(.*?)\.log$")


@dataclass
class ErrorPattern:
    """A log regex and the error it indicates.

    ``message`` may reference regex groups as ``{1}``, ``{2}``...; when a
    group did not match, ``fallback`` is used instead.
    """

    regex: re.Pattern
    kind: ErrorKind
    message: str
    fixable: bool
    fallback: str = ""


DEFAULT_PATTERNS = [
    ErrorPattern(
        re.compile(r"spawn\s+(\S+?)\s+ENOENT", re.IGNORECASE),
        ErrorKind.PATH,
        'Command "{1}" not found in PATH',
        True,
        fallback="Command not found in PATH",
    ),
    ErrorPattern(
        re.compile(r"(?:command not found|is not recognized as an internal or external command)", re.IGNORECASE),
        ErrorKind.PATH,
        "Command not found in PATH",
        True,
    ),
    ErrorPattern(
        re.compile(r"Error: connect ECONNREFUSED", re.IGNORECASE),
        ErrorKind.NETWORK,
        "Connection refused",
        False,
    ),
    ErrorPattern(
        re.compile(r"EACCES: permission denied|PermissionError: \[Errno 13\]", re.IGNORECASE),
        ErrorKind.PERMISSION,
        "Permission denied",
        True,
    ),
    ErrorPattern(
        re.compile(r"Error: Cannot find module\s+['\"]([^'\"]+)['\"]", re.IGNORECASE),
        ErrorKind.PATH,
        "Module not found: {1}",
        True,
    ),
    ErrorPattern(
        re.compile(r"ModuleNotFoundError: No module named\s+['\"]([^'\"]+)['\"]"),
        ErrorKind.PATH,
        "Module not found: {1}",
        True,
    ),
    ErrorPattern(
        re.compile(r"SyntaxError: Unexpected token|JSONDecodeError", re.IGNORECASE),
        ErrorKind.CONFIG,
        "Invalid configuration syntax",
        True,
    ),
    ErrorPattern(
        re.compile(r"Missing required environment variable\s+['\"]?(\w+)", re.IGNORECASE),
        ErrorKind.ENVIRONMENT,
        "Missing environment variable: {1}",
        False,
    ),
    ErrorPattern(
        re.compile(r"Error: Failed to start server", re.IGNORECASE),
        ErrorKind.UNKNOWN,
        "Failed to start server",
        True,
    ),
]


@dataclass
class LogAnalysisResult:
    errors: list[ErrorRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    server_status: dict[str, bool] = field(default_factory=dict)
    log_files: list[Path] = field(default_factory=list)


class LogClassifier:
    """Matches log lines against an ordered pattern table, one match per line."""

    def __init__(self, patterns: list[ErrorPattern] | None = None):
        self.patterns = list(patterns or DEFAULT_PATTERNS)

    def add_pattern(self, pattern: ErrorPattern) -> None:
        self.patterns.append(pattern)

    def classify(self, content: str, server: MCPServer | None = None) -> list[ErrorRecord]:
        errors = []
        for line in content.splitlines():
            if not line.strip():
                continue
            for pattern in self.patterns:
                match = pattern.regex.search(line)
                if match:
                    errors.append(
                        ErrorRecord(
                            kind=pattern.kind,
                            message=_render(pattern, match),
                            server=server,
                            fixable=pattern.fixable,
                            details=line.strip(),
                        )
                    )
                    break
        return errors

    def log_file_paths(self, client: MCPClient, home: Path | None = None) -> list[str]:
        """Glob patterns where ``client`` writes its MCP logs."""
        home = home or Path.home()
        windows = sys.platform.startswith("win")
        macos = sys.platform == "darwin"
        appdata = Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")

        if client.type == ClientType.CLAUDE_DESKTOP:
            if windows:
                base = appdata / "Claude" / "logs"
            elif macos:
                base = home / "Library" / "Logs" / "Claude"
            else:
                base = home / ".config" / "Claude" / "logs"
            return [str(base / "mcp-server-*.log"), str(base / "mcp.log")]

        if client.type == ClientType.WINDSURF:
            return [str(home / ".codeium" / "windsurf" / "logs" / "mcp-*.log")]

        if client.type == ClientType.CURSOR:
            if windows:
                base = appdata / "Cursor" / "logs"
            elif macos:
                base = home / "Library" / "Application Support" / "Cursor" / "logs"
            else:
                base = home / ".config" / "Cursor" / "logs"
            return [str(base / "mcp-*.log")]

        return []

    def analyze_client_logs(self, client: MCPClient, home: Path | None = None) -> LogAnalysisResult:
        """Classify every log file the client has written."""
        logger.info("Analyzing logs for %s", client.name)
        result = LogAnalysisResult()

        for pattern in self.log_file_paths(client, home):
            files = sorted(glob.glob(pattern))
            if not files:
                result.warnings.append(f"No log files found matching pattern: {pattern}")
                continue

            for file_name in files:
                log_file = Path(file_name)
                server = _server_for_log(client, log_file)
                errors = self.analyze_log_file(log_file, server)
                result.errors.extend(errors)
                result.log_files.append(log_file)
                if server is not None:
                    result.server_status[server.name] = not any(
                        e.kind in (ErrorKind.PATH, ErrorKind.UNKNOWN) for e in errors
                    )

        logger.info(
            "Found %d errors and %d warnings for %s",
            len(result.errors), len(result.warnings), client.name,
        )
        return result

    def analyze_log_file(self, log_file: Path, server: MCPServer | None = None) -> list[ErrorRecord]:
        try:
            content = log_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error("Failed to read log file %s: %s", log_file, e)
            return []
        return self.classify(content, server)


def read_logs(paths: list[Path], separator: str = "\n\n--- Next Log File ---\n\n") -> str:
    """Concatenate log files for the AI advisor, skipping unreadable ones."""
    contents = []
    for path in paths:
        try:
            contents.append(path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.error("Failed to read log file %s: %s", path, e)
    return separator.join(c for c in contents if c)


def _server_for_log(client: MCPClient, log_file: Path) -> MCPServer | None:
    match = _SERVER_LOG_NAME.search(log_file.name)
    if not match:
        return None
    return client.find_server(match.group(1))


def _render(pattern: ErrorPattern, match: re.Match) -> str:
    if "{" not in pattern.message:
        return pattern.message
    groups = match.groups()
    if not groups or any(g is None for g in groups):
        return pattern.fallback or pattern.message
    return pattern.message.format(None, *groups)
