"""Command-line interface for Launcher Bootstrap."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from launcher_bootstrap.config.loader import load_config
from launcher_bootstrap.core.context import BootstrapContext
from launcher_bootstrap.core.exceptions import ConfigError, LauncherBootstrapError
from launcher_bootstrap.core.migrator import run_migration
from launcher_bootstrap.core.startup import load_state
from launcher_bootstrap.core.state import MigrationDomain, read_migration_report
from launcher_bootstrap.utils.logging import setup_logging


def main(args: list[str] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not hasattr(parsed, "command") or parsed.command is None:
        parser.print_help()
        return 0

    commands = {
        "migrate": cmd_migrate,
        "status": cmd_status,
        "start": cmd_start,
    }

    try:
        return asyncio.run(_run_command(commands[parsed.command], parsed))

    except LauncherBootstrapError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="launcher-bootstrap",
        description="Migrate launcher state out of SQLite and start the launcher",
    )

    subparsers = parser.add_subparsers(dest="command", title="Commands")

    migrate_parser = subparsers.add_parser(
        "migrate",
        help="Run the one-time SQLite migration",
    )
    migrate_parser.add_argument(
        "--force",
        action="store_true",
        help="Migrate again even if the migration already ran",
    )
    migrate_parser.add_argument(
        "--domain",
        action="append",
        choices=[d.value for d in MigrationDomain],
        help="Only migrate this domain (repeatable, use with --force)",
    )

    subparsers.add_parser(
        "status",
        help="Show the report of the last migration",
    )

    subparsers.add_parser(
        "start",
        help="Migrate if needed and run the launcher process",
    )

    for subparser in subparsers.choices.values():
        subparser.add_argument(
            "--config", "-c",
            type=Path,
            required=True,
            help="Path to YAML configuration file",
        )

    return parser


async def _run_command(command, args: argparse.Namespace) -> int:
    """Load config, open the context and run one command."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(
        log_file=config.logging.file,
        backup_count=config.logging.backup_count,
        level=config.logging.level,
    )

    ctx = BootstrapContext.from_config(config, logger)
    await ctx.open()
    try:
        return await command(ctx, args)
    finally:
        await ctx.close()


async def cmd_migrate(ctx: BootstrapContext, args: argparse.Namespace) -> int:
    """Execute the migrate command."""
    domains = [MigrationDomain(d) for d in args.domain] if args.domain else None

    report = await run_migration(ctx, force=args.force, domains=domains, show_progress=True)

    if report.skipped:
        ctx.info("Migration already done. Use --force to run it again.")
        return 0
    return 1 if report.failed_domains else 0


async def cmd_status(ctx: BootstrapContext, args: argparse.Namespace) -> int:
    """Print the stored migration report."""
    report = await read_migration_report(ctx.store)
    if report is None:
        print("Migration has not run yet.")
        return 0

    print(json.dumps(report.to_dict(), indent=2))
    return 0


async def cmd_start(ctx: BootstrapContext, args: argparse.Namespace) -> int:
    """Run the full startup sequence until the main loop stops."""
    ctx.info("Starting launcher")
    await load_state(ctx)
    return 0


if __name__ == "__main__":
    sys.exit(main())
