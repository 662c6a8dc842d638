"""mcp-doctor fix command."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from rich.prompt import Confirm

from mcpdoctor.cli.common import build_engine, client_options, collect_errors, resolve_client
from mcpdoctor.core.config import load_config
from mcpdoctor.core.errors import BackupError
from mcpdoctor.core.models import Fix
from mcpdoctor.core.output import (
    console,
    print_errors,
    print_fix_preview,
    print_fix_result,
    print_fix_summary,
    print_repair_plan,
)
from mcpdoctor.diagnostics.log_classifier import read_logs


@click.command()
@client_options
@click.option(
    "--log", "log_files", multiple=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Log file to classify (repeatable; default: the client's log directory)",
)
@click.option("--server", "server_name", default=None, help="Attribute --log files to this server")
@click.option("--all", "fix_all", is_flag=True, help="Apply every automatic fix, skip the rest")
@click.option("--ai", is_flag=True, help="Include AI-suggested fixes (requires ANTHROPIC_API_KEY)")
@click.option("--preview", is_flag=True, help="Preview fixes without applying")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
def fix(
    client_type: str,
    config_path: Path | None,
    log_files: tuple[Path, ...],
    server_name: str | None,
    fix_all: bool,
    ai: bool,
    preview: bool,
    yes: bool,
):
    """Fix the errors found in the client's MCP server logs.

    Without --all, every fix that changes how a server launches, touches
    permissions, or needs manual work is confirmed one by one.
    """
    config = load_config(Path.cwd())
    client = resolve_client(client_type, config_path)
    analysis = collect_errors(client, log_files, server_name)

    if not analysis.errors:
        print_errors(analysis.errors, analysis.warnings)
        return

    engine = build_engine(config, use_ai=ai)
    try:
        engine.start()
    except BackupError as e:
        console.print(f"\n  [red]Backup store unavailable: {e}[/red]\n")
        raise SystemExit(1)

    skipped: list[Fix] = []
    engine.on("fix_skipped", skipped.append)
    engine.on("fix_applied", lambda _fix, result: print_fix_result(result))

    if fix_all:
        _fix_all(engine, client, analysis.errors, preview, yes, skipped)
        return

    if ai:
        plan = asyncio.run(
            engine.create_ai_repair_plan(client, analysis.errors, read_logs(analysis.log_files))
        )
    else:
        plan = engine.create_repair_plan(client, analysis.errors)

    if not plan.fixes:
        print_errors(analysis.errors)
        console.print("  No fixes available. Try: mcp-doctor fix --ai\n")
        return

    print_repair_plan(plan)
    if preview:
        return

    if not yes and not plan.requires_confirmation:
        if not Confirm.ask(f"  Apply all {len(plan.fixes)} fixes?", default=True):
            console.print("  [dim]Cancelled.[/dim]")
            return

    def confirm(fix: Fix) -> bool:
        if yes:
            return True
        print_fix_preview(fix)
        return Confirm.ask("  Apply this fix?", default=False)

    console.print()
    results = engine.apply_repair_plan(client, plan, confirm=confirm)
    print_fix_summary(results)


def _fix_all(engine, client, errors, preview: bool, yes: bool, skipped: list[Fix]):
    """Handle --all: automatic fixes only."""
    plan = engine.create_repair_plan(client, errors)
    automatic = plan.automatic_fixes

    console.print("\n  [bold]mcp-doctor Repair Engine[/bold]")
    console.print(f"  Analyzing {len(errors)} errors...\n")

    if automatic:
        console.print("  [green]Automatic (safe to apply):[/green]")
        for f in automatic:
            console.print(f"    {f.description}")
        console.print()

    if plan.manual_fixes:
        console.print("  [dim]Need confirmation (run `mcp-doctor fix` to review):[/dim]")
        for f in plan.manual_fixes:
            console.print(f"    {f.description}")
        console.print()

    if not automatic:
        console.print("  No automatic fixes available.\n")
        return

    if preview:
        return

    if not yes:
        if not Confirm.ask(f"  Apply all {len(automatic)} automatic fixes?", default=True):
            console.print("  [dim]Cancelled.[/dim]")
            return

    results = engine.fix_all_issues(client, errors)
    print_fix_summary(results, skipped=len(skipped))
