"""CLI module for database archive backup and restore.

Provides commands to dump a whole database into a paged JSON archive,
restore such an archive into another database, and check an archive on
disk.

Usage:
    DB_PROFILE=prod db-archive backup
    db-archive backup -d backup/2026-01-15 --excludes audit_log
    db-archive backup --database postgres --connection postgresql://u:p@host/db
    db-archive restore -d backup/2026-01-15 --profile staging
    db-archive restore -d backup/2026-01-15 --includes orders,customers
    db-archive restore -d backup/2026-01-15 --force
    db-archive validate -d backup/2026-01-15
    db-archive profiles

Commands:
    backup    - Dump every table into an archive directory
    restore   - Restore an archive directory into a database
    validate  - Check an archive directory without connecting
    profiles  - List available profiles
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from functools import partial

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from db_archive.backup.backup_restore import (
    JobReporter,
    backup_database,
    restore_database,
    validate_backup,
)
from db_archive.backup.filters import parse_table_list
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import (
    BackupSummary,
    RestoreSummary,
    TableDumpResult,
    TableRestoreResult,
)
from db_archive.config.loader import load_db_config
from db_archive.config.models import JobSettings
from db_archive.errors import (
    ConfigurationError,
    ConnectivityError,
    PreconditionError,
)
from db_archive.factory import build_settings, check_not_installed, connect

console = Console()


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich, on the CLI console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def default_backup_directory(today: date | None = None) -> str:
    """Return ``backup/<YYYY-MM-DD>`` for today."""
    return f"backup/{(today or date.today()).isoformat()}"


# ============================================================================
# Console progress
# ============================================================================


class ConsoleReporter(JobReporter):
    """Shows a progress bar per table and prints a row as each one finishes.

    Use as a context manager around the job so the live display is torn
    down even when the job raises.
    """

    def __init__(self, action: str) -> None:
        self.action = action
        self.bars = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._tasks: dict[str, TaskID] = {}

    def __enter__(self) -> "ConsoleReporter":
        self.bars.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.bars.stop()

    def table_started(self, table: str, total_count: int) -> None:
        self._tasks[table] = self.bars.add_task(
            f"[cyan]{self.action}[/cyan] {table} ({total_count:,} rows)",
            total=1.0,
        )

    def progress(self, table: str, fraction: float) -> None:
        task_id = self._tasks.get(table)
        if task_id is not None:
            self.bars.update(task_id, completed=fraction)

    def table_finished(
        self, table: str, result: TableDumpResult | TableRestoreResult
    ) -> None:
        task_id = self._tasks.pop(table, None)
        if task_id is not None:
            self.bars.remove_task(task_id)

        if isinstance(result, TableDumpResult):
            note = " [dim](added archive_row_id)[/dim]" if result.synthesized_key else ""
            console.print(
                f"  [green]v[/green] {table}: {result.metadata.total_count:,} rows, "
                f"{len(result.metadata.row_files)} shard(s){note}"
            )
        elif result.skipped:
            console.print(f"  [red]x[/red] {table}: skipped (schema)")
        elif result.failures:
            console.print(
                f"  [yellow]![/yellow] {table}: {result.rows_inserted:,}/"
                f"{result.total_count:,} rows, {len(result.failures)} failure(s)"
            )
        else:
            console.print(f"  [green]v[/green] {table}: {result.rows_inserted:,} rows")


# ============================================================================
# Summaries
# ============================================================================


def _print_backup_summary(summary: BackupSummary) -> None:
    table = Table(title="Backup Summary", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    table.add_column("Shards", justify="right")

    for result in summary.dumped:
        table.add_row(
            result.table,
            f"{result.metadata.total_count:,}",
            str(len(result.metadata.row_files)),
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[bold green]v[/bold green] Backed up {len(summary.dumped)} table(s), "
        f"{summary.total_rows:,} rows to [cyan]{summary.directory}[/cyan]"
    )
    if summary.skipped:
        console.print(f"  [dim]Filtered out: {', '.join(summary.skipped)}[/dim]")


def _print_restore_summary(summary: RestoreSummary) -> None:
    table = Table(title="Restore Summary", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Archived", justify="right")
    table.add_column("Restored", justify="right")
    table.add_column("Schema")
    table.add_column("Failures", justify="right")

    for result in summary.results:
        if result.skipped:
            schema = "[red]skipped[/red]"
        elif result.created:
            schema = "[green]created[/green]"
        elif result.columns_added:
            schema = f"[yellow]+{result.columns_added} column(s)[/yellow]"
        else:
            schema = "[dim]unchanged[/dim]"
        failures = str(len(result.failures)) if result.failures else ""
        table.add_row(
            result.table,
            f"{result.total_count:,}",
            f"{result.rows_inserted:,}",
            schema,
            failures,
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[bold green]v[/bold green] Restored {len(summary.results)} table(s), "
        f"{summary.total_rows:,} rows from [cyan]{summary.directory}[/cyan]"
    )
    if summary.missing:
        console.print(
            f"  [yellow]No metadata (not restored): {', '.join(summary.missing)}[/yellow]"
        )
    if summary.failure_count:
        console.print(
            f"  [yellow]{summary.failure_count} failure(s)[/yellow] logged to "
            f"[cyan]{summary.error_log}[/cyan]"
        )


# ============================================================================
# Async command implementations
# ============================================================================


def _settings_from_args(args: argparse.Namespace, directory: str) -> JobSettings:
    return build_settings(
        directory=directory,
        config_path=args.config,
        profile_name=args.profile,
        database_type=args.database,
        connection=args.connection,
        includes=parse_table_list(args.includes),
        excludes=parse_table_list(args.excludes),
        page_size=getattr(args, "page_size", None),
        log_dir=getattr(args, "log_dir", None),
        env_prefix=getattr(args, "env_prefix", ""),
    )


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Returns:
        0 on success, 1 on any failure (dump errors are fatal).
    """
    directory = args.directory or default_backup_directory()

    try:
        settings = _settings_from_args(args, directory)
        if ArchiveLayout(settings.directory).catalog_path.exists():
            console.print(
                f"[bold red]x[/bold red] Archive already exists: {settings.directory}"
            )
            return 1
        client = await connect(settings)
    except (ConfigurationError, ConnectivityError) as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    console.print(f"Backing up to [cyan]{settings.directory}[/cyan]", style="dim")

    try:
        with ConsoleReporter("Dumping") as reporter:
            summary = await backup_database(client, settings, reporter=reporter)
    except Exception as e:
        console.print(f"\n[bold red]x[/bold red] Backup failed: {e}")
        return 1
    finally:
        await client.close()

    _print_backup_summary(summary)
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 when the job ran to completion, even with table or shard
        failures; 1 when it was refused or aborted.
    """
    try:
        settings = _settings_from_args(args, args.directory)
    except ConfigurationError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    layout = ArchiveLayout(settings.directory)
    if not layout.catalog_path.exists():
        console.print(f"[bold red]x[/bold red] No archive found in {settings.directory}")
        return 1

    try:
        client = await connect(settings)
    except ConnectivityError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    precondition = None
    if args.force:
        console.print("Install-state check skipped (--force)", style="yellow")
    else:
        precondition = partial(check_not_installed, settings)

    console.print(f"Restoring from [cyan]{settings.directory}[/cyan]", style="dim")

    try:
        with ConsoleReporter("Restoring") as reporter:
            summary = await restore_database(
                client,
                settings,
                reporter=reporter,
                precondition=precondition,
            )
    except (PreconditionError, ConnectivityError, OSError, ValueError) as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    finally:
        await client.close()

    _print_restore_summary(summary)
    return 0


# ============================================================================
# Command wrappers (validate and profiles read local files only)
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Dump the database into an archive directory.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore an archive directory into the database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Check an archive directory.

    Reads only local files -- no database calls.

    Returns:
        0 if the archive is valid, 1 otherwise.
    """
    report = validate_backup(args.directory)

    for error in report["errors"]:
        console.print(f"  [red]x[/red] {error}")
    for warning in report["warnings"]:
        console.print(f"  [yellow]![/yellow] {warning}")

    if report["valid"]:
        console.print(f"[bold green]v[/bold green] Archive is valid: {args.directory}")
        return 0
    console.print(
        f"[bold red]x[/bold red] Archive is invalid: {len(report['errors'])} error(s)"
    )
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml is missing or invalid.
    """
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.provider, profile.description or "")

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile name from db.toml (default: $DB_PROFILE)",
    )
    parser.add_argument(
        "--database",
        default=None,
        help="Database type (postgres); requires --connection",
    )
    parser.add_argument(
        "--connection",
        default=None,
        help="Connection URL; requires --database",
    )
    parser.add_argument(
        "--includes",
        default=None,
        help="Comma-separated tables to process (default: all)",
    )
    parser.add_argument(
        "--excludes",
        default=None,
        help="Comma-separated tables to skip",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="db-archive",
        description="Back up and restore whole databases as paged JSON archives",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser(
        "backup",
        help="Dump every table into an archive directory",
    )
    p_backup.add_argument(
        "-d",
        "--directory",
        default=None,
        help="Archive directory (default: backup/<today>)",
    )
    _add_connection_arguments(p_backup)
    p_backup.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Rows per shard file (default: 1000)",
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser(
        "restore",
        help="Restore an archive directory into the database",
    )
    p_restore.add_argument(
        "-d",
        "--directory",
        required=True,
        help="Archive directory to restore",
    )
    _add_connection_arguments(p_restore)
    p_restore.add_argument(
        "--log-dir",
        default=None,
        help="Directory for the failure log (default: logs)",
    )
    p_restore.add_argument(
        "--force",
        action="store_true",
        help="Restore even if the destination already holds the archived tables",
    )
    p_restore.set_defaults(func=cmd_restore)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Check an archive directory without connecting",
    )
    p_validate.add_argument(
        "-d",
        "--directory",
        required=True,
        help="Archive directory to check",
    )
    p_validate.set_defaults(func=cmd_validate)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
