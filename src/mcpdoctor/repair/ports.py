"""Ports: the collaborators the repair engine depends on."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mcpdoctor.core.models import (
    AdvisorAnalysis,
    BackupInfo,
    ClientType,
    ErrorRecord,
    MCPClient,
)


@dataclass
class ConfigUpdate:
    """A single field substitution for one server entry."""

    server_name: str
    field: str  # "command", "args" or "env"
    value: object


class ConfigStore(Protocol):
    """Port for persisting client configuration changes."""

    def update_client_config(self, client: MCPClient, updates: list[ConfigUpdate]) -> None:
        """Apply field updates; raise on validation or write failure."""
        ...

    def repair_config(self, config_path: Path, client_type: ClientType) -> bool:
        """Repair the config syntax; return whether anything was changed."""
        ...


class BackupStore(Protocol):
    """Port for snapshotting client configuration before mutation."""

    def initialize(self) -> None:
        ...

    def create_backup(self, client: MCPClient) -> BackupInfo:
        ...

    def create_automatic_backup_if_needed(self, client: MCPClient) -> BackupInfo | None:
        ...


class Advisor(Protocol):
    """Port for the AI advisor. Returned fixes are advisory only."""

    def is_available(self) -> bool:
        ...

    def analyze_log(self, content: str, known_errors: list[ErrorRecord]) -> AdvisorAnalysis:
        ...
