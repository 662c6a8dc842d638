"""Rule-based fix strategies, one per error kind."""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable, Iterable

from mcpdoctor.core.models import (
    Change,
    ChangeKind,
    ErrorKind,
    ErrorRecord,
    Fix,
    MCPServer,
)

logger = logging.getLogger("mcpdoctor.strategies")

Strategy = Callable[[list[ErrorRecord], MCPServer], "Fix | None"]

# Probed in order; the first candidate that answers ``--version`` wins.
DEFAULT_ALTERNATIVES: dict[str, list[str]] = {
    "node": ["nodejs"],
    "nodejs": ["node"],
    "npm": [],
    "npx": [],
    "python": ["python3", "py"],
    "python3": ["python", "py"],
    "pip": ["pip3"],
    "pip3": ["pip"],
}

INSTALL_HINTS: dict[str, str] = {
    "node": "Install Node.js from https://nodejs.org/",
    "nodejs": "Install Node.js from https://nodejs.org/",
    "npm": "Install npm by installing Node.js from https://nodejs.org/",
    "npx": 'Install npx by running "npm install -g npx"',
    "python": "Install Python from https://www.python.org/",
    "python3": "Install Python from https://www.python.org/",
    "pip": "Install pip by installing Python from https://www.python.org/",
    "pip3": "Install pip by installing Python from https://www.python.org/",
    "uv": "Install uv from https://docs.astral.sh/uv/",
    "uvx": "Install uv from https://docs.astral.sh/uv/",
}

PYTHON_LAUNCHERS = {"python", "python3", "py", "uv", "uvx", "pip", "pip3", "pipx"}

_COMMAND_NOT_FOUND = re.compile(r"not found in path|command not found", re.IGNORECASE)
_QUOTED_TOKEN = re.compile(r'"([^"]+)"')
_MODULE_NOT_FOUND = re.compile(
    r"module not found|cannot find module|no module named", re.IGNORECASE
)
_MODULE_NAME_PATTERNS = [
    re.compile(r"Module not found:\s*['\"]?([\w@./\-]+)", re.IGNORECASE),
    re.compile(r"Cannot find module\s+['\"]([^'\"]+)['\"]", re.IGNORECASE),
    re.compile(r"No module named\s+['\"]?([\w.\-]+)", re.IGNORECASE),
]


class CommandResolver:
    """Finds an installed equivalent for a missing executable.

    Probing runs ``<candidate> --version``. Pass ``available`` to replace
    probing with a precomputed set of command names.
    """

    def __init__(
        self,
        alternatives: dict[str, list[str]] | None = None,
        available: Iterable[str] | None = None,
        probe_timeout: float = 5.0,
        search_dirs: Iterable[Path] | None = None,
    ):
        self.alternatives = {k: list(v) for k, v in DEFAULT_ALTERNATIVES.items()}
        for command, candidates in (alternatives or {}).items():
            self.alternatives[command] = list(candidates)
        self.available = set(available) if available is not None else None
        self.probe_timeout = probe_timeout
        self.search_dirs = [Path(d) for d in search_dirs] if search_dirs else [Path.cwd()]
        self._probe_cache: dict[str, bool] = {}

    def resolve(self, command: str) -> str | None:
        """Return the first working alternative for ``command``, or None."""
        for candidate in self.candidates(command):
            if self.is_available(candidate):
                logger.debug("Resolved %s -> %s", command, candidate)
                return candidate

        # Locally installed package binaries need no probe
        for base in self.search_dirs:
            local_bin = base / "node_modules" / ".bin" / command
            if local_bin.exists():
                return str(local_bin)

        return None

    def candidates(self, command: str) -> list[str]:
        found = list(self.alternatives.get(command, []))
        for runtime in self._runtime_candidates(command):
            if runtime not in found:
                found.append(runtime)
        return [c for c in found if c != command]

    def is_available(self, candidate: str) -> bool:
        if self.available is not None:
            return candidate in self.available

        if candidate not in self._probe_cache:
            self._probe_cache[candidate] = self._probe(candidate)
        return self._probe_cache[candidate]

    def _probe(self, candidate: str) -> bool:
        if Path(candidate).is_absolute():
            argv = [candidate]
        else:
            argv = shlex.split(candidate, posix=os.name != "nt")
        try:
            completed = subprocess.run(
                [*argv, "--version"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.probe_timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError, ValueError):
            return False
        return completed.returncode == 0

    def _runtime_candidates(self, command: str) -> list[str]:
        """Interpreter paths bundled with the running environment."""
        if self.available is not None:
            return []

        if command in ("python", "python3") and sys.executable:
            return [sys.executable]

        if command in ("npm", "npx", "node", "nodejs"):
            for runtime in ("node", "nodejs"):
                located = shutil.which(runtime)
                if not located:
                    continue
                if command in ("node", "nodejs"):
                    return [located]
                sibling = Path(located).parent / command
                if sibling.exists():
                    return [str(sibling)]
        return []


class StrategyRegistry:
    """Maps each error kind to the strategy that proposes its fix."""

    def __init__(self, resolver: CommandResolver | None = None):
        self.resolver = resolver or CommandResolver()
        self._strategies: dict[ErrorKind, Strategy | None] = {
            ErrorKind.PATH: self._fix_path_errors,
            ErrorKind.PERMISSION: self._fix_permission_errors,
            ErrorKind.CONFIG: self._fix_config_errors,
            ErrorKind.NETWORK: None,
            ErrorKind.ENVIRONMENT: None,
            ErrorKind.UNKNOWN: None,
        }
        missing = set(ErrorKind) - set(self._strategies)
        if missing:
            raise ValueError(
                f"No strategy entry for: {', '.join(sorted(k.value for k in missing))}"
            )

    def register(self, kind: ErrorKind, strategy: Strategy | None) -> None:
        """Install or replace the strategy for ``kind``."""
        self._strategies[kind] = strategy

    def has_strategy(self, kind: ErrorKind) -> bool:
        return self._strategies.get(kind) is not None

    def propose_fix(
        self, kind: ErrorKind, errors: list[ErrorRecord], server: MCPServer
    ) -> Fix | None:
        """Propose one fix for all errors of ``kind`` on ``server``."""
        strategy = self._strategies.get(kind)
        if strategy is None or not errors:
            return None
        return strategy(errors, server)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _fix_path_errors(self, errors: list[ErrorRecord], server: MCPServer) -> Fix | None:
        """Substitute a missing command, or suggest installing what is missing."""
        not_found = next((e for e in errors if _COMMAND_NOT_FOUND.search(e.message)), None)
        if not_found:
            command = _extract_command(not_found.message) or _launch_name(server.command)
            if command:
                return self._command_fix(not_found, server, command)

        missing_module = next((e for e in errors if _MODULE_NOT_FOUND.search(e.message)), None)
        if missing_module:
            module = _extract_module(missing_module.message)
            label = module or "missing module"
            return Fix(
                error=missing_module,
                description=f"Install {label}",
                changes=[
                    Change(
                        kind=ChangeKind.PACKAGE,
                        description=f"Install {label}",
                        server=server,
                        before=None,
                        after=module,
                    )
                ],
                automatic_fix=False,
                manual_steps=[_module_install_step(server, module)],
            )

        return None

    def _command_fix(self, error: ErrorRecord, server: MCPServer, command: str) -> Fix:
        if _is_launch_command(command, server.command):
            alternative = self.resolver.resolve(command)
            if alternative:
                return Fix(
                    error=error,
                    description=f"Fix {command} command by using {alternative}",
                    changes=[
                        Change(
                            kind=ChangeKind.COMMAND,
                            description=f"Replace {command} with {alternative}",
                            server=server,
                            before=server.command,
                            after=alternative,
                        )
                    ],
                    automatic_fix=True,
                )

        hint = INSTALL_HINTS.get(command, f"Install {command} or update your PATH environment variable")
        return Fix(
            error=error,
            description=f"Install {command} command",
            changes=[
                Change(
                    kind=ChangeKind.PACKAGE,
                    description=f"Install {command}",
                    server=server,
                    before=None,
                    after=command,
                )
            ],
            automatic_fix=False,
            manual_steps=[hint],
        )

    def _fix_permission_errors(self, errors: list[ErrorRecord], server: MCPServer) -> Fix:
        """Permission problems always need a person with the right privileges."""
        steps = ["Fix file permissions or run with elevated privileges"]
        if server.command:
            steps.append(f"Check that '{server.command}' and the files it opens are accessible")
        return Fix(
            error=errors[0],
            description="Fix permission issues",
            changes=[
                Change(
                    kind=ChangeKind.PERMISSION,
                    description="Fix permissions for server files",
                    server=server,
                )
            ],
            automatic_fix=False,
            manual_steps=steps,
        )

    def _fix_config_errors(self, errors: list[ErrorRecord], server: MCPServer) -> Fix:
        """Syntax repair is verifiable before and after, so it is applied unattended."""
        return Fix(
            error=errors[0],
            description="Fix configuration syntax",
            changes=[
                Change(
                    kind=ChangeKind.CONFIG_FIELD,
                    description="Repair configuration syntax",
                    server=server,
                )
            ],
            automatic_fix=True,
        )


def _extract_command(message: str) -> str | None:
    match = _QUOTED_TOKEN.search(message)
    return match.group(1) if match else None


def _extract_module(message: str) -> str | None:
    for pattern in _MODULE_NAME_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).rstrip("'\".,")
    return None


def _launch_name(command: str) -> str:
    if not command:
        return ""
    if Path(command).exists():
        executable = command
    else:
        try:
            parts = shlex.split(command, posix=os.name != "nt")
        except ValueError:
            parts = command.split()
        executable = parts[0] if parts else ""
    name = Path(executable.strip("\"'")).name
    return name[:-4] if name.lower().endswith(".exe") else name


def _is_launch_command(command: str, server_command: str) -> bool:
    """True if ``command`` is what the server entry actually launches."""
    if not server_command:
        return True
    return command in (server_command, _launch_name(server_command))


def _module_install_step(server: MCPServer, module: str | None) -> str:
    target = module or "the missing module"
    if _launch_name(server.command) in PYTHON_LAUNCHERS:
        return f"Install {target} with pip (pip install {target})"
    return f"Install {target} using npm or yarn (npm install {target})"
