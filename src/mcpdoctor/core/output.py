"""Rich terminal formatting for mcp-doctor output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mcpdoctor.core.models import (
    BackupInfo,
    ErrorKind,
    ErrorRecord,
    Fix,
    FixResult,
    RepairPlan,
)
from mcpdoctor.repair.planner import needs_confirmation

console = Console()
error_console = Console(stderr=True)


KIND_COLORS = {
    ErrorKind.PATH: "yellow",
    ErrorKind.PERMISSION: "red",
    ErrorKind.CONFIG: "magenta",
    ErrorKind.NETWORK: "blue",
    ErrorKind.ENVIRONMENT: "cyan",
    ErrorKind.UNKNOWN: "white",
}


def format_error(error: ErrorRecord) -> str:
    """Format a single error for terminal output."""
    color = KIND_COLORS.get(error.kind, "white")
    server = f"  [dim]{escape(error.server.name)}[/dim]" if error.server else ""
    return f"  [{color}]● {error.kind.value}[/{color}]  {escape(error.message)}{server}"


def print_errors(errors: list[ErrorRecord], warnings: list[str] | None = None) -> None:
    """Print classified errors."""
    if not errors:
        console.print("\n  [green]No errors found.[/green]\n")
    else:
        console.print(f"\n  [bold]{len(errors)} error(s) found[/bold]\n")
        for error in errors:
            console.print(format_error(error))
        console.print()

    for warning in warnings or []:
        console.print(f"  [dim]{escape(warning)}[/dim]")


def print_fix_preview(fix: Fix) -> None:
    """Print a fix with its changes and manual steps."""
    lines = []

    if fix.automatic_fix:
        mode = "[green]automatic[/green]"
        border = "green"
    else:
        mode = "[yellow]manual[/yellow]"
        border = "yellow"
    if fix.source == "advisor":
        mode += "  [dim](AI suggestion)[/dim]"
    lines.append(f"  Mode: {mode}")
    if needs_confirmation(fix):
        lines.append("  [yellow]Requires confirmation[/yellow]")
    lines.append("")
    lines.append(f"  {escape(fix.description)}")

    for change in fix.changes:
        lines.append("")
        lines.append(f"  [bold]{change.kind.value}[/bold]  {escape(change.description)}")
        if change.before is not None:
            lines.append(f"  [red]- {escape(str(change.before))}[/red]")
        if change.after is not None:
            lines.append(f"  [green]+ {escape(str(change.after))}[/green]")

    if fix.manual_steps:
        lines.append("")
        lines.append("  [cyan]Manual steps required:[/cyan]")
        for step in fix.manual_steps:
            lines.append(f"    - {escape(step)}")

    server = fix.server.name if fix.server else "client"
    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]Fix — {escape(server)} / {fix.error.kind.value}[/bold]",
        border_style=border,
        padding=(0, 1),
    ))


def print_repair_plan(plan: RepairPlan) -> None:
    """Print the whole plan, automatic fixes first."""
    console.print(
        f"\n  [bold]Repair plan[/bold]: {len(plan.fixes)} fix(es) for {len(plan.errors)} error(s)"
    )
    if plan.requires_confirmation:
        console.print("  [yellow]This plan requires confirmation before it is applied.[/yellow]")
    console.print()

    for fix in plan.automatic_fixes:
        print_fix_preview(fix)
    for fix in plan.manual_fixes:
        print_fix_preview(fix)

    unaddressed = plan.unaddressed_errors
    if unaddressed:
        console.print("  [dim]No rule-based fix for:[/dim]")
        for error in unaddressed:
            console.print(format_error(error))
        console.print()

    if plan.explanation:
        confidence = ""
        if plan.advisor_confidence is not None:
            confidence = f" (confidence {plan.advisor_confidence:.0f}/100)"
        console.print(f"  [cyan]AI analysis{confidence}:[/cyan] {escape(plan.explanation)}\n")


def print_fix_result(result: FixResult) -> None:
    """Print a single fix result."""
    label = escape(result.fix.description) if result.fix else ""
    if result.success:
        console.print(f"  [green]✅ {label}[/green]")
        for change in result.changes:
            console.print(f"     [dim]{escape(change.description)}[/dim]")
    else:
        console.print(f"  [red]❌ {label}[/red]  {escape(result.message)}")
        if result.fix and result.fix.manual_steps:
            for step in result.fix.manual_steps:
                console.print(f"     [cyan]-> {escape(step)}[/cyan]")


def print_fix_summary(results: list[FixResult], skipped: int = 0) -> None:
    """Print summary after applying multiple fixes."""
    success = sum(1 for r in results if r.success)
    failed = len(results) - success

    console.print()
    if success > 0:
        console.print(f"  [green]{success} fix(es) applied.[/green]")
    if failed > 0:
        console.print(f"  [red]{failed} fix(es) not applied.[/red]")
    if skipped > 0:
        console.print(f"  [yellow]{skipped} fix(es) need manual confirmation.[/yellow]")
    if success > 0:
        console.print("  [dim]Run `mcp-doctor backup list` to find a backup to restore.[/dim]")
    console.print()


def print_backups(backups: list[BackupInfo]) -> None:
    """Print a table of stored backups."""
    if not backups:
        console.print("\n  No backups found.\n")
        return

    table = Table(title="Backups", show_lines=False)
    table.add_column("ID", style="bold")
    table.add_column("Client")
    table.add_column("Created")
    table.add_column("Config")
    for backup in backups:
        table.add_row(
            backup.id,
            backup.client_type.value,
            backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            str(backup.config_path),
        )
    console.print(table)
