"""Reading, validating and rewriting MCP client configuration files."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from mcpdoctor.core.errors import ConfigFileError
from mcpdoctor.core.models import ClientType, MCPClient, MCPServer
from mcpdoctor.repair.ports import ConfigUpdate

logger = logging.getLogger("mcpdoctor.config")

SERVER_FIELDS = ("command", "args", "env")

TEMPLATE_SERVERS = {
    "mcp-doctor": {
        "command": "npx",
        "args": ["-y", "mcp-doctor"],
        "env": {},
    },
}


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


class ConfigManager:
    """Owns every write to a client's config file.

    Writes go to a temporary file in the same directory which then
    replaces the original, so readers never see a half-written file.
    """

    def read_config(self, config_path: Path) -> dict:
        config_path = Path(config_path)
        logger.debug("Reading config from %s", config_path)
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigFileError(
                f"Failed to read configuration file: {config_path} ({e})", path=config_path
            ) from e
        if not isinstance(data, dict):
            raise ConfigFileError(
                f"Configuration file is not a JSON object: {config_path}", path=config_path
            )
        return data

    def write_config(self, config_path: Path, config: dict) -> None:
        config_path = Path(config_path)
        logger.debug("Writing config to %s", config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=config_path.parent, prefix=f".{config_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(config, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, config_path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise ConfigFileError(
                f"Failed to write configuration file: {config_path} ({e})", path=config_path
            ) from e

    def validate_config(self, config: dict, client_type: ClientType | None = None) -> ValidationResult:
        errors: list[str] = []

        servers = config.get("mcpServers")
        if not isinstance(servers, dict):
            errors.append("Missing mcpServers section")
            return ValidationResult(valid=False, errors=errors)

        for name, server in servers.items():
            if not name or not name.strip():
                errors.append("Server name cannot be empty")
            if not isinstance(server, dict):
                errors.append(f"Server {name}: entry must be an object")
                continue
            if not server.get("command"):
                errors.append(f"Server {name}: Missing command")
            if "args" in server and not isinstance(server["args"], list):
                errors.append(f"Server {name}: args must be an array")
            if "env" in server and not isinstance(server["env"], dict):
                errors.append(f"Server {name}: env must be an object")

        return ValidationResult(valid=not errors, errors=errors)

    def update_client_config(self, client: MCPClient, updates: list[ConfigUpdate]) -> None:
        """Apply field updates to the client's config; raises ConfigFileError on failure."""
        logger.info("Updating %s configuration", client.name)
        config = self.read_config(client.config_path)
        servers = config.setdefault("mcpServers", {})

        for update in updates:
            if update.field not in SERVER_FIELDS:
                raise ConfigFileError(f"Unsupported server field: {update.field}")
            entry = servers.setdefault(update.server_name, {"command": "", "args": [], "env": {}})
            entry[update.field] = update.value

        self._write_validated(client.config_path, config, client.type)

        # Keep the in-memory registration in step with the file
        for update in updates:
            server = client.find_server(update.server_name)
            if server is not None:
                setattr(server, update.field, update.value)

        logger.info("Updated %s configuration", client.name)

    def add_server(self, client: MCPClient, server: MCPServer) -> None:
        logger.info("Adding server %s to %s", server.name, client.name)
        config = self.read_config(client.config_path)
        servers = config.setdefault("mcpServers", {})
        if server.name in servers:
            raise ConfigFileError(f"Server {server.name} already exists in {client.name} configuration")

        servers[server.name] = {"command": server.command, "args": server.args, "env": server.env}
        self._write_validated(client.config_path, config, client.type)
        client.servers.append(server)

    def remove_server(self, client: MCPClient, server_name: str) -> MCPServer:
        logger.info("Removing server %s from %s", server_name, client.name)
        config = self.read_config(client.config_path)
        servers = config.get("mcpServers") or {}
        if server_name not in servers:
            raise ConfigFileError(f"Server {server_name} not found in {client.name} configuration")

        entry = servers.pop(server_name)
        self.write_config(client.config_path, config)
        client.servers = [s for s in client.servers if s.name != server_name]
        return _server_from_entry(server_name, entry)

    def create_template_config(self, client_type: ClientType, config_path: Path) -> None:
        logger.info("Creating template config for %s at %s", client_type.value, config_path)
        self.write_config(config_path, {"mcpServers": json.loads(json.dumps(TEMPLATE_SERVERS))})

    def repair_config(self, config_path: Path, client_type: ClientType) -> bool:
        """Repair the config file in place. Returns whether anything changed.

        Raises ConfigFileError when the file is invalid in a way only a
        person can fix, such as a server with no command.
        """
        config_path = Path(config_path)
        logger.info("Repairing config at %s", config_path)

        if not config_path.exists():
            self.create_template_config(client_type, config_path)
            return True

        try:
            config = self.read_config(config_path)
        except ConfigFileError:
            backup_path = config_path.with_name(f"{config_path.name}.backup-{int(time.time() * 1000)}")
            shutil.copy2(config_path, backup_path)
            logger.info("Created backup of invalid config at %s", backup_path)
            self.create_template_config(client_type, config_path)
            return True

        validation = self.validate_config(config, client_type)
        if validation.valid:
            return False

        before = json.dumps(config, sort_keys=True)
        if not isinstance(config.get("mcpServers"), dict):
            config["mcpServers"] = {}
        for name, entry in list(config["mcpServers"].items()):
            if not isinstance(entry, dict):
                continue
            if "args" in entry and not isinstance(entry["args"], list):
                entry["args"] = [str(entry["args"])] if entry["args"] else []
            if "env" in entry and not isinstance(entry["env"], dict):
                entry["env"] = {}

        if json.dumps(config, sort_keys=True) == before:
            # Only structural problems are repaired; a missing command needs a person
            raise ConfigFileError(
                f"Configuration needs manual repair: {', '.join(validation.errors)}",
                path=config_path,
                errors=validation.errors,
            )

        self.write_config(config_path, config)
        return True

    def load_servers(self, config_path: Path) -> list[MCPServer]:
        config = self.read_config(config_path)
        servers = config.get("mcpServers")
        if not isinstance(servers, dict):
            return []
        return [
            _server_from_entry(name, entry)
            for name, entry in servers.items()
            if isinstance(entry, dict)
        ]

    def _write_validated(self, config_path: Path, config: dict, client_type: ClientType) -> None:
        validation = self.validate_config(config, client_type)
        if not validation.valid:
            raise ConfigFileError(
                f"Invalid configuration: {', '.join(validation.errors)}",
                path=config_path,
                errors=validation.errors,
            )
        self.write_config(config_path, config)


def _server_from_entry(name: str, entry: dict) -> MCPServer:
    args = entry.get("args")
    env = entry.get("env")
    return MCPServer(
        name=name,
        command=str(entry.get("command") or ""),
        args=list(args) if isinstance(args, list) else [],
        env=dict(env) if isinstance(env, dict) else {},
    )
