"""mcp-doctor repair command."""

from __future__ import annotations

from pathlib import Path

import click

from mcpdoctor.cli.common import build_engine, client_options, resolve_client
from mcpdoctor.core.config import load_config
from mcpdoctor.core.output import console


@click.command()
@client_options
def repair(client_type: str, config_path: Path | None):
    """Back up and repair the client's config file in one step.

    Intended for scheduled runs: it never prompts and never changes
    server commands.
    """
    config = load_config(Path.cwd())
    client = resolve_client(client_type, config_path)
    engine = build_engine(config)

    if engine.auto_repair(client):
        console.print(f"\n  [green]Repaired {client.name} configuration[/green]  {client.config_path}\n")
    else:
        console.print(f"\n  No repair needed for {client.name}.  [dim](run with -v for details)[/dim]\n")
