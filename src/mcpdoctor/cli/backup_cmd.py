"""mcp-doctor backup commands."""

from __future__ import annotations

from pathlib import Path

import click
from rich.prompt import Confirm

from mcpdoctor.cli.common import build_backup_manager, client_options, resolve_client
from mcpdoctor.core.config import load_config
from mcpdoctor.core.errors import BackupError
from mcpdoctor.core.output import console, print_backups


@click.group()
def backup():
    """List, create and restore config backups."""


@backup.command("list")
@click.option("--all", "show_all", is_flag=True, help="Show backups for every client")
@client_options
def list_backups(show_all: bool, client_type: str, config_path: Path | None):
    """List stored backups, newest first."""
    manager = build_backup_manager(load_config(Path.cwd()))
    manager.initialize()

    if show_all:
        print_backups(manager.list_backups())
    else:
        print_backups(manager.get_backups_for_client(resolve_client(client_type, config_path)))


@backup.command("create")
@client_options
def create_backup(client_type: str, config_path: Path | None):
    """Back up the client's config file now."""
    manager = build_backup_manager(load_config(Path.cwd()))
    manager.initialize()
    client = resolve_client(client_type, config_path)

    try:
        info = manager.create_backup(client)
    except BackupError as e:
        console.print(f"\n  [red]{e}[/red]\n")
        raise SystemExit(1)
    console.print(f"\n  [green]Created backup {info.id}[/green]  {info.backup_path}\n")


@backup.command("restore")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def restore_backup(backup_id: str, yes: bool):
    """Restore BACKUP_ID over the config file it was taken from."""
    manager = build_backup_manager(load_config(Path.cwd()))
    manager.initialize()

    info = manager.get_backup(backup_id)
    if info is None:
        console.print(f"\n  [red]Backup not found: {backup_id}[/red]")
        console.print("  Run `mcp-doctor backup list --all` to see available backups.\n")
        raise SystemExit(1)

    if not yes and not Confirm.ask(f"  Overwrite {info.config_path}?", default=False):
        console.print("  [dim]Cancelled.[/dim]")
        return

    try:
        manager.restore_backup(backup_id)
    except BackupError as e:
        console.print(f"\n  [red]{e}[/red]\n")
        raise SystemExit(1)
    console.print(f"\n  [green]Restored {info.config_path}[/green] from {backup_id}\n")
