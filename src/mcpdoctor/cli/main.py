"""Click CLI entry point for mcp-doctor."""

from __future__ import annotations

from pathlib import Path

import click

from mcpdoctor._version import __version__
from mcpdoctor.core.config import load_config
from mcpdoctor.core.log import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="mcp-doctor")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """mcp-doctor - diagnose and repair local MCP server setups.

    Classify server log errors, plan fixes, and apply the safe ones.
    """
    config = load_config(Path.cwd())
    setup_logging("DEBUG" if verbose else config.logging.level, config.logging.file)


# Import and register subcommands
from mcpdoctor.cli.diagnose_cmd import diagnose  # noqa: E402
from mcpdoctor.cli.fix_cmd import fix  # noqa: E402
from mcpdoctor.cli.repair_cmd import repair  # noqa: E402
from mcpdoctor.cli.backup_cmd import backup  # noqa: E402

cli.add_command(diagnose)
cli.add_command(fix)
cli.add_command(repair)
cli.add_command(backup)


if __name__ == "__main__":
    cli()
