"""Backups of client configuration files, with restore support."""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path

from mcpdoctor.core.errors import BackupError
from mcpdoctor.core.models import BackupInfo, ClientType, MCPClient

logger = logging.getLogger("mcpdoctor.backup")

INDEX_FILE = "index.json"


class BackupManager:
    """Copies client configs into a backup directory tracked by ``index.json``."""

    def __init__(
        self,
        backup_dir: Path,
        max_per_client: int = 10,
        interval: timedelta = timedelta(hours=24),
    ):
        self.backup_dir = Path(backup_dir)
        self.max_per_client = max_per_client
        self.interval = interval
        self._backups: list[BackupInfo] = []
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """Load the index from disk and prune old backups."""
        self._load_index()
        self._cleanup_old_backups()
        logger.info("Backup manager initialized with %d backups", len(self._backups))

    def create_backup(self, client: MCPClient) -> BackupInfo:
        logger.info("Creating backup of %s configuration", client.name)
        config_path = Path(client.config_path)
        if not config_path.exists():
            raise BackupError(f"Client configuration file not found: {config_path}")

        backup_id = str(uuid.uuid4())
        timestamp = datetime.now()
        backup_path = self.backup_dir / (
            f"{client.type.value}-{backup_id}-{timestamp.strftime('%Y-%m-%dT%H-%M-%S')}.json"
        )

        try:
            shutil.copy2(config_path, backup_path)
        except OSError as e:
            raise BackupError(f"Failed to back up {config_path}: {e}") from e

        info = BackupInfo(
            id=backup_id,
            client_type=client.type,
            config_path=config_path,
            backup_path=backup_path,
            timestamp=timestamp,
            servers=[s.name for s in client.servers],
        )
        self._backups.append(info)
        self._save_index()

        logger.info("Created backup of %s configuration: %s", client.name, backup_id)
        return info

    def restore_backup(self, backup_id: str) -> BackupInfo:
        """Copy a backup over its original config path."""
        backup = self.get_backup(backup_id)
        if backup is None:
            raise BackupError(f"Backup not found: {backup_id}")
        if not backup.backup_path.exists():
            raise BackupError(f"Backup file not found: {backup.backup_path}")

        logger.info("Restoring backup: %s", backup_id)
        backup.config_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copy2(backup.backup_path, backup.config_path)
        except OSError as e:
            raise BackupError(f"Failed to restore {backup.config_path}: {e}") from e
        return backup

    def delete_backup(self, backup_id: str) -> None:
        backup = self.get_backup(backup_id)
        if backup is None:
            raise BackupError(f"Backup not found: {backup_id}")

        logger.info("Deleting backup: %s", backup_id)
        backup.backup_path.unlink(missing_ok=True)
        self._backups = [b for b in self._backups if b.id != backup_id]
        self._save_index()

    def list_backups(self) -> list[BackupInfo]:
        """All backups, newest first."""
        return sorted(self._backups, key=lambda b: b.timestamp, reverse=True)

    def get_backup(self, backup_id: str) -> BackupInfo | None:
        return next((b for b in self._backups if b.id == backup_id), None)

    def get_backups_for_client(self, client: MCPClient) -> list[BackupInfo]:
        config_path = Path(client.config_path)
        return [
            b for b in self.list_backups()
            if b.client_type == client.type and b.config_path == config_path
        ]

    def get_latest_backup_for_client(self, client: MCPClient) -> BackupInfo | None:
        backups = self.get_backups_for_client(client)
        return backups[0] if backups else None

    def create_automatic_backup_if_needed(self, client: MCPClient) -> BackupInfo | None:
        """Back up unless a recent enough backup already exists.

        Failures are logged and reported as ``None``.
        """
        latest = self.get_latest_backup_for_client(client)
        if latest is not None and datetime.now() - latest.timestamp <= self.interval:
            return None

        try:
            return self.create_backup(client)
        except BackupError as e:
            logger.error("Failed to create automatic backup for %s: %s", client.name, e)
            return None

    def _load_index(self) -> None:
        index_file = self.backup_dir / INDEX_FILE
        if not index_file.exists():
            self._backups = []
            return

        try:
            entries = json.loads(index_file.read_text())
            self._backups = [
                BackupInfo(
                    id=entry["id"],
                    client_type=ClientType(entry["client_type"]),
                    config_path=Path(entry["config_path"]),
                    backup_path=Path(entry["backup_path"]),
                    timestamp=datetime.fromisoformat(entry["timestamp"]),
                    servers=list(entry.get("servers", [])),
                )
                for entry in entries
            ]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load backup index: %s", e)
            self._backups = []

    def _save_index(self) -> None:
        index_file = self.backup_dir / INDEX_FILE
        entries = [
            {
                "id": b.id,
                "client_type": b.client_type.value,
                "config_path": str(b.config_path),
                "backup_path": str(b.backup_path),
                "timestamp": b.timestamp.isoformat(),
                "servers": b.servers,
            }
            for b in self._backups
        ]
        try:
            index_file.write_text(json.dumps(entries, indent=2))
        except OSError as e:
            raise BackupError(f"Failed to save backup index: {e}") from e

    def _cleanup_old_backups(self) -> None:
        """Keep only the newest ``max_per_client`` backups per client config."""
        groups: dict[tuple[str, str], list[BackupInfo]] = {}
        for backup in self._backups:
            key = (backup.client_type.value, str(backup.config_path))
            groups.setdefault(key, []).append(backup)

        for backups in groups.values():
            backups.sort(key=lambda b: b.timestamp, reverse=True)
            for stale in backups[self.max_per_client:]:
                try:
                    self.delete_backup(stale.id)
                except BackupError as e:
                    logger.error("Failed to clean up backup %s: %s", stale.id, e)
