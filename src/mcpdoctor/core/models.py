"""Shared data models used across mcp-doctor modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


class ClientType(enum.Enum):
    CLAUDE_DESKTOP = "claude_desktop"
    WINDSURF = "windsurf"
    CURSOR = "cursor"
    CUSTOM = "custom"


class ErrorKind(enum.Enum):
    PATH = "path_error"
    PERMISSION = "permission_error"
    CONFIG = "config_error"
    NETWORK = "network_error"
    ENVIRONMENT = "env_error"
    UNKNOWN = "unknown_error"


class ChangeKind(enum.Enum):
    COMMAND = "command"
    ENVIRONMENT_VARIABLE = "environment"
    PERMISSION = "permission"
    CONFIG_FIELD = "config"
    PACKAGE = "package"


@dataclass
class MCPServer:
    """A server registration as it appears in a client's config file."""

    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class MCPClient:
    """An MCP client application and the servers it launches."""

    type: ClientType
    name: str
    config_path: Path
    servers: list[MCPServer] = field(default_factory=list)

    def find_server(self, name: str) -> MCPServer | None:
        return next((s for s in self.servers if s.name == name), None)


@dataclass(frozen=True)
class ErrorRecord:
    """A single problem reported by the classifier."""

    kind: ErrorKind
    message: str
    server: MCPServer | None = None
    fixable: bool = False
    details: object = None


@dataclass
class Change:
    """One concrete mutation proposed by a fix."""

    kind: ChangeKind
    description: str
    server: MCPServer | None
    before: object = None
    after: object = None


@dataclass
class Fix:
    """A proposed remediation for one error group.

    Permission fixes are never automatic. This is enforced here so that
    no strategy, advisor or caller can construct one by accident.
    """

    error: ErrorRecord
    description: str
    changes: list[Change] = field(default_factory=list)
    automatic_fix: bool = False
    manual_steps: list[str] = field(default_factory=list)
    source: str = "rule"  # "rule" or "advisor"

    def __post_init__(self) -> None:
        if self.automatic_fix and self.touches_permissions:
            raise ValueError("Permission fixes cannot be automatic")

    @property
    def touches_permissions(self) -> bool:
        if self.error is not None and self.error.kind == ErrorKind.PERMISSION:
            return True
        return any(c.kind == ChangeKind.PERMISSION for c in self.changes)

    @property
    def touches_commands(self) -> bool:
        return any(c.kind == ChangeKind.COMMAND for c in self.changes)

    @property
    def server(self) -> MCPServer | None:
        return self.error.server if self.error is not None else None


@dataclass
class RepairPlan:
    """The ordered, confirmation-gated set of fixes for one repair cycle."""

    errors: list[ErrorRecord] = field(default_factory=list)
    fixes: list[Fix] = field(default_factory=list)
    requires_confirmation: bool = False
    explanation: str = ""
    advisor_confidence: float | None = None

    @property
    def automatic_fixes(self) -> list[Fix]:
        return [f for f in self.fixes if f.automatic_fix]

    @property
    def manual_fixes(self) -> list[Fix]:
        return [f for f in self.fixes if not f.automatic_fix]

    @property
    def unaddressed_errors(self) -> list[ErrorRecord]:
        """Errors whose (server, kind) group produced no rule-based fix."""
        covered = {
            (f.error.server.name, f.error.kind)
            for f in self.fixes
            if f.source == "rule" and f.error.server is not None
        }
        return [
            e for e in self.errors
            if e.server is None or (e.server.name, e.kind) not in covered
        ]


@dataclass
class FixError:
    """Why a fix could not be applied.

    ``fixable`` means this particular outcome may be retried
    automatically. Every failure produced by the executor sets it to
    False.
    """

    kind: ErrorKind
    message: str
    fixable: bool = False


@dataclass
class FixResult:
    """Result of applying a fix."""

    success: bool
    changes: list[Change] = field(default_factory=list)
    error: FixError | None = None
    fix: Fix | None = None
    applied_at: datetime = field(default_factory=datetime.now)

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        if self.fix is not None:
            return self.fix.description
        return "Applied"


@dataclass
class AdvisorAnalysis:
    """Suggestions returned by the AI advisor."""

    suggested_fixes: list[Fix] = field(default_factory=list)
    confidence: float = 0.0  # 0 - 100
    explanation: str = ""


@dataclass
class BackupInfo:
    """A stored copy of a client configuration file."""

    id: str
    client_type: ClientType
    config_path: Path
    backup_path: Path
    timestamp: datetime = field(default_factory=datetime.now)
    servers: list[str] = field(default_factory=list)
