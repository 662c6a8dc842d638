"""Configuration management for mcp-doctor (mcpdoctor.toml parsing + defaults)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]


CONFIG_FILENAME = "mcpdoctor.toml"


@dataclass
class RepairConfig:
    probe_timeout: float = 5.0
    mutation_timeout: float = 30.0
    alternatives: dict[str, list[str]] = field(default_factory=dict)
    search_dirs: list[str] = field(default_factory=list)


@dataclass
class BackupConfig:
    directory: Path | None = None
    max_per_client: int = 10
    interval_hours: float = 24.0


@dataclass
class AIConfig:
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 2000
    timeout: float = 60.0


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: Path | None = None


@dataclass
class DoctorConfig:
    """Complete mcp-doctor configuration."""

    repair: RepairConfig = field(default_factory=RepairConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(project_path: Path | None = None) -> DoctorConfig:
    """Load configuration from mcpdoctor.toml if present, otherwise return defaults."""
    config = DoctorConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / CONFIG_FILENAME
    if not config_file.exists():
        return config

    if tomllib is None:
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)

    if "repair" in data:
        r = data["repair"]
        for attr in ("probe_timeout", "mutation_timeout"):
            if attr in r:
                setattr(config.repair, attr, float(r[attr]))
        if "alternatives" in r:
            config.repair.alternatives = {
                cmd: list(candidates) for cmd, candidates in r["alternatives"].items()
            }
        if "search_dirs" in r:
            config.repair.search_dirs = list(r["search_dirs"])

    if "backup" in data:
        b = data["backup"]
        if "directory" in b:
            config.backup.directory = Path(b["directory"]).expanduser()
        if "max_per_client" in b:
            config.backup.max_per_client = b["max_per_client"]
        if "interval_hours" in b:
            config.backup.interval_hours = float(b["interval_hours"])

    if "ai" in data:
        a = data["ai"]
        for attr in ("model", "max_tokens", "timeout"):
            if attr in a:
                setattr(config.ai, attr, a[attr])

    if "logging" in data:
        lg = data["logging"]
        if "level" in lg:
            config.logging.level = str(lg["level"]).upper()
        if "file" in lg:
            config.logging.file = Path(lg["file"]).expanduser()

    return config


def get_home_dir() -> Path:
    """Get or create the mcp-doctor data directory (~/.mcpdoctor by default)."""
    home = os.environ.get("MCPDOCTOR_HOME")
    home_dir = Path(home).expanduser() if home else Path.home() / ".mcpdoctor"
    home_dir.mkdir(parents=True, exist_ok=True)
    return home_dir


def get_backup_dir(config: DoctorConfig | None = None) -> Path:
    """Resolve the backup directory, honouring [backup].directory."""
    if config is not None and config.backup.directory is not None:
        backup_dir = config.backup.directory
    else:
        backup_dir = get_home_dir() / "backups"
    backup_dir.mkdir(parents=True, exist_ok=True)
    return backup_dir


def get_api_key() -> str | None:
    return os.environ.get("ANTHROPIC_API_KEY") or os.environ.get("CLAUDE_API_KEY")
