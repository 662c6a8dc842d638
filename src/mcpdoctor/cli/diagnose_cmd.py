"""mcp-doctor diagnose command."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from mcpdoctor.cli.common import build_engine, client_options, collect_errors, resolve_client
from mcpdoctor.core.config import load_config
from mcpdoctor.core.output import console, print_errors, print_repair_plan
from mcpdoctor.diagnostics.log_classifier import read_logs


@click.command()
@client_options
@click.option(
    "--log", "log_files", multiple=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Log file to classify (repeatable; default: the client's log directory)",
)
@click.option("--server", "server_name", default=None, help="Attribute --log files to this server")
@click.option("--ai", is_flag=True, help="Ask the AI advisor about unaddressed errors (requires ANTHROPIC_API_KEY)")
def diagnose(client_type: str, config_path: Path | None, log_files: tuple[Path, ...], server_name: str | None, ai: bool):
    """Classify errors and show the repair plan without applying it."""
    config = load_config(Path.cwd())
    client = resolve_client(client_type, config_path)

    console.print(f"\n  [bold]{client.name}[/bold]  {client.config_path}")
    console.print(f"  {len(client.servers)} server(s) configured")

    analysis = collect_errors(client, log_files, server_name)
    print_errors(analysis.errors, analysis.warnings)

    engine = build_engine(config, use_ai=ai)
    if ai:
        plan = asyncio.run(
            engine.create_ai_repair_plan(client, analysis.errors, read_logs(analysis.log_files))
        )
    else:
        plan = engine.create_repair_plan(client, analysis.errors)

    if not plan.fixes:
        console.print("  No fixes available.\n")
        return

    print_repair_plan(plan)
    console.print("  Apply with: [bold]mcp-doctor fix[/bold]  (automatic only: [bold]mcp-doctor fix --all[/bold])\n")
