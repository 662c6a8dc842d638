"""Shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fakes import FakeBackupStore, FakeConfigStore
from mcpdoctor.core.models import ClientType, MCPClient, MCPServer


@pytest.fixture
def server() -> MCPServer:
    return MCPServer(name="S1", command="python", args=["server.py"])


@pytest.fixture
def other_server() -> MCPServer:
    return MCPServer(name="S2", command="npx", args=["-y", "some-mcp"])


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "claude_desktop_config.json"
    path.write_text(json.dumps({
        "mcpServers": {
            "S1": {"command": "python", "args": ["server.py"], "env": {}},
            "S2": {"command": "npx", "args": ["-y", "some-mcp"], "env": {}},
        }
    }, indent=2))
    return path


@pytest.fixture
def client(server: MCPServer, other_server: MCPServer, config_file: Path) -> MCPClient:
    return MCPClient(
        type=ClientType.CLAUDE_DESKTOP,
        name="Claude Desktop",
        config_path=config_file,
        servers=[server, other_server],
    )


@pytest.fixture
def config_store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture
def backup_store() -> FakeBackupStore:
    return FakeBackupStore()
