"""Locating MCP client configuration files on this machine."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from mcpdoctor.clients.config_manager import ConfigManager
from mcpdoctor.core.errors import ConfigFileError
from mcpdoctor.core.models import ClientType, MCPClient

logger = logging.getLogger("mcpdoctor.detector")

CLIENT_NAMES = {
    ClientType.CLAUDE_DESKTOP: "Claude Desktop",
    ClientType.WINDSURF: "Windsurf",
    ClientType.CURSOR: "Cursor",
    ClientType.CUSTOM: "Custom",
}


def _platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def _appdata(home: Path) -> Path:
    return Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")


def default_config_path(client_type: ClientType, home: Path | None = None) -> Path | None:
    """Where ``client_type`` keeps its MCP server config on this platform."""
    home = home or Path.home()
    platform = _platform()

    if client_type == ClientType.CLAUDE_DESKTOP:
        if platform == "windows":
            return _appdata(home) / "Claude" / "claude_desktop_config.json"
        if platform == "macos":
            return home / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
        return home / ".config" / "Claude" / "claude_desktop_config.json"

    if client_type == ClientType.WINDSURF:
        return home / ".codeium" / "windsurf" / "mcp_config.json"

    if client_type == ClientType.CURSOR:
        return home / ".cursor" / "mcp.json"

    return None


def load_client(
    client_type: ClientType,
    config_path: Path | None = None,
    config_manager: ConfigManager | None = None,
) -> MCPClient:
    """Build an MCPClient for ``client_type``.

    A missing or unreadable config still yields a client (with no
    servers) so that repair can recreate the file.
    """
    path = config_path or default_config_path(client_type)
    if path is None:
        raise ValueError(f"No default config location for {client_type.value}; pass a path")

    manager = config_manager or ConfigManager()
    servers = []
    if path.exists():
        try:
            servers = manager.load_servers(path)
        except ConfigFileError as e:
            logger.warning("Could not load servers from %s: %s", path, e)

    return MCPClient(
        type=client_type,
        name=CLIENT_NAMES[client_type],
        config_path=path,
        servers=servers,
    )


def detect_clients(config_manager: ConfigManager | None = None) -> list[MCPClient]:
    """Every known client whose config file exists."""
    clients = []
    for client_type in (ClientType.CLAUDE_DESKTOP, ClientType.WINDSURF, ClientType.CURSOR):
        path = default_config_path(client_type)
        if path is not None and path.exists():
            logger.debug("Found %s config at %s", client_type.value, path)
            clients.append(load_client(client_type, path, config_manager))
    return clients
