"""Helpers shared by the mcp-doctor commands."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import click

from mcpdoctor.clients.backup import BackupManager
from mcpdoctor.clients.config_manager import ConfigManager
from mcpdoctor.clients.detector import load_client
from mcpdoctor.core.config import DoctorConfig, get_api_key, get_backup_dir
from mcpdoctor.core.models import ClientType, ErrorRecord, MCPClient
from mcpdoctor.diagnostics.log_classifier import LogAnalysisResult, LogClassifier
from mcpdoctor.repair.advisor import ClaudeAdvisor
from mcpdoctor.repair.engine import RepairEngine

CLIENT_CHOICES = [t.value for t in ClientType]


def client_options(func):
    """Add --client and --config options to a command."""
    func = click.option(
        "--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
        default=None, help="Client config file (default: the client's usual location)",
    )(func)
    func = click.option(
        "--client", "client_type", type=click.Choice(CLIENT_CHOICES),
        default=ClientType.CLAUDE_DESKTOP.value, show_default=True,
        help="MCP client to work on",
    )(func)
    return func


def resolve_client(client_type: str, config_path: Path | None) -> MCPClient:
    try:
        return load_client(ClientType(client_type), config_path)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def build_backup_manager(config: DoctorConfig) -> BackupManager:
    return BackupManager(
        get_backup_dir(config),
        max_per_client=config.backup.max_per_client,
        interval=timedelta(hours=config.backup.interval_hours),
    )


def build_engine(config: DoctorConfig, use_ai: bool = False) -> RepairEngine:
    advisor = None
    if use_ai:
        advisor = ClaudeAdvisor(
            api_key=get_api_key(),
            model=config.ai.model,
            max_tokens=config.ai.max_tokens,
        )
    return RepairEngine(
        ConfigManager(),
        build_backup_manager(config),
        advisor=advisor,
        config=config,
    )


def collect_errors(
    client: MCPClient,
    log_files: tuple[Path, ...],
    server_name: str | None = None,
) -> LogAnalysisResult:
    """Classify the given log files, or the client's own logs when none are given."""
    classifier = LogClassifier()
    if not log_files:
        return classifier.analyze_client_logs(client)

    server = None
    if server_name:
        server = client.find_server(server_name)
        if server is None:
            raise click.UsageError(f"Server '{server_name}' not found in {client.config_path}")

    result = LogAnalysisResult()
    for log_file in log_files:
        errors: list[ErrorRecord] = classifier.analyze_log_file(
            log_file, server or _server_from_name(client, log_file)
        )
        result.errors.extend(errors)
        result.log_files.append(log_file)
    return result


def _server_from_name(client: MCPClient, log_file: Path):
    stem = log_file.stem
    for prefix in ("mcp-server-", "mcp-"):
        if stem.startswith(prefix):
            return client.find_server(stem[len(prefix):])
    return client.find_server(stem)
