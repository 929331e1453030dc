"""Backup and restore job drivers.

A backup walks every table of the source database and writes an archive
directory: a catalog, one metadata file per table, and paged row shards.
A restore reads such a directory back into a destination database, one
table at a time, creating tables and adding columns as needed.

Both drivers take an immutable ``JobSettings`` and return a summary
model.  Table- and shard-level failures during restore are aggregated in
the summary and the job ``ErrorLog``; only abort-class errors and dump
read errors propagate.

Usage:
    from db_archive.backup.backup_restore import (
        backup_database,
        restore_database,
        validate_backup,
    )

    # Backup
    summary = await backup_database(client, settings)

    # Restore
    summary = await restore_database(
        client,
        settings,
        precondition=partial(check_not_installed, settings),
    )

    # Validate (sync -- local file read only)
    report = validate_backup("backup/2026-01-15")
"""

import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import ValidationError

from db_archive.adapters.base import DatabaseClient
from db_archive.backup.dumper import dump_table
from db_archive.backup.errorlog import ErrorLog
from db_archive.backup.filters import include_table
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import (
    BackupSummary,
    Failure,
    RestoreSummary,
    TableDumpResult,
    TableMetadata,
    TableRestoreResult,
)
from db_archive.backup.restorer import restore_table
from db_archive.config.models import JobSettings
from db_archive.errors import MetadataError

logger = logging.getLogger(__name__)

# Hooks run against the destination around the table loop
RestoreHook = Callable[[DatabaseClient], Awaitable[None]]

# Install-state gate: receives the destination and the tables to restore
Precondition = Callable[[DatabaseClient, list[str]], Awaitable[None]]


class JobReporter:
    """Receives progress events from a job.  The base class ignores them."""

    def table_started(self, table: str, total_count: int) -> None:
        pass

    def progress(self, table: str, fraction: float) -> None:
        pass

    def table_finished(
        self, table: str, result: TableDumpResult | TableRestoreResult
    ) -> None:
        pass


async def backup_database(
    client: DatabaseClient,
    settings: JobSettings,
    reporter: JobReporter | None = None,
) -> BackupSummary:
    """Dump every table passing the filter into ``settings.directory``.

    The catalog lists all source tables, filtered or not, and is written
    before any table is dumped.

    Args:
        client: Source database.
        settings: Job settings (directory, page size, filters).
        reporter: Optional progress sink.

    Returns:
        ``BackupSummary`` with one ``TableDumpResult`` per dumped table.

    Raises:
        FileExistsError: If the directory already holds an archive.
        ValueError: If a table name cannot be stored in the archive layout;
            nothing is written.
        Exception: Any read or write error while dumping a table.

    Example:
        summary = await backup_database(client, settings)
        print(f"{len(summary.dumped)} tables, {summary.total_rows} rows")
    """
    reporter = reporter or JobReporter()
    layout = ArchiveLayout(settings.directory)

    if layout.catalog_path.exists():
        raise FileExistsError(f"Archive already exists: {layout.catalog_path}")

    tables = await client.get_table_names()
    for table in tables:
        layout.check_table_name(table)

    layout.ensure_root()
    layout.write_catalog(tables)
    logger.info("Catalog of %d tables written to %s", len(tables), layout.catalog_path)

    summary = BackupSummary(directory=str(layout.root), tables=tables)

    for table in tables:
        if not include_table(table, settings.includes, settings.excludes):
            summary.skipped.append(table)
            continue

        result = await dump_table(
            client,
            layout,
            table,
            settings.page_size,
            progress=lambda fraction, t=table: reporter.progress(t, fraction),
            on_count=lambda total, t=table: reporter.table_started(t, total),
        )
        summary.dumped.append(result)
        reporter.table_finished(table, result)

    return summary


async def restore_database(
    client: DatabaseClient,
    settings: JobSettings,
    reporter: JobReporter | None = None,
    precondition: Precondition | None = None,
    before_restore: RestoreHook | None = None,
    after_restore: RestoreHook | None = None,
    error_log: ErrorLog | None = None,
) -> RestoreSummary:
    """Restore every archived table passing the filter.

    Order of work:

    1. Check the archive directory and catalog exist.
    2. ``precondition(client, tables)`` with the tables about to be
       restored (e.g. the install-state gate); may raise.
    3. ``before_restore(client)``.
    4. Each catalog table with a metadata file, in catalog order.
    5. ``after_restore(client)``.

    Args:
        client: Destination database.
        settings: Job settings (directory, filters, log directory).
        reporter: Optional progress sink.
        precondition: Awaited before any DDL is issued, with the catalog
            tables that pass the filter.
        before_restore: Hook run before the first table.
        after_restore: Hook run after the last table.
        error_log: Failure sink.  Defaults to a new job log under
            ``settings.log_dir``.

    Returns:
        ``RestoreSummary``; ``failure_count`` > 0 means partial success.

    Raises:
        FileNotFoundError: If the directory or its catalog is missing.
        PreconditionError: Raised by ``precondition``.

    Example:
        summary = await restore_database(client, settings)
        if summary.failure_count:
            print(f"See {summary.error_log}")
    """
    reporter = reporter or JobReporter()
    layout = ArchiveLayout(settings.directory)

    if not layout.exists():
        raise FileNotFoundError(f"Archive directory not found: {layout.root}")
    if not layout.catalog_path.exists():
        raise FileNotFoundError(f"Archive catalog not found: {layout.catalog_path}")

    tables = layout.read_catalog()
    selected = [t for t in tables if include_table(t, settings.includes, settings.excludes)]

    if precondition is not None:
        await precondition(client, selected)

    error_log = error_log or ErrorLog.for_job(settings.log_dir, "restore")
    summary = RestoreSummary(directory=str(layout.root))

    if before_restore is not None:
        await before_restore(client)

    for table in tables:
        if not include_table(table, settings.includes, settings.excludes):
            summary.skipped.append(table)
            continue

        try:
            layout.check_table_name(table)
            metadata = layout.read_metadata(table)
        except (OSError, ValueError) as e:
            error = MetadataError(table, "Metadata could not be read", cause=e)
            logger.error("Skipping %s: %s", table, error)
            failure = Failure.from_error(error)
            summary.failures.append(failure)
            error_log.append(table, [failure])
            continue

        if metadata is None:
            logger.info("Skipping %s: no metadata in archive", table)
            summary.missing.append(table)
            continue

        reporter.table_started(table, metadata.total_count)
        result = await restore_table(
            client,
            layout,
            table,
            metadata,
            progress=lambda fraction, t=table: reporter.progress(t, fraction),
        )
        summary.results.append(result)
        if result.failures:
            summary.failures.extend(result.failures)
            error_log.append(table, result.failures)
        reporter.table_finished(table, result)

    if after_restore is not None:
        await after_restore(client)

    if error_log.count:
        summary.error_log = str(error_log.path)

    return summary


def validate_backup(directory: str | Path) -> dict:
    """Validate an archive directory without touching a database.

    Checks that the catalog is a list of names, every metadata file
    parses, every listed shard exists, and ``rowFiles`` is empty exactly
    when ``totalCount`` is zero.  Catalog tables without metadata are
    reported as warnings, as restore skips them.

    This function is **sync** -- it only reads local files.

    Args:
        directory: Archive directory.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]),
        and ``warnings`` (list[str]).

    Example:
        report = validate_backup("backup/2026-01-15")
        if report["errors"]:
            raise ValueError("Archive is invalid")
    """
    errors: list[str] = []
    warnings: list[str] = []
    layout = ArchiveLayout(directory)

    if not layout.exists():
        errors.append(f"Archive directory not found: {layout.root}")
        return {"valid": False, "errors": errors, "warnings": warnings}

    try:
        tables = layout.read_catalog()
    except FileNotFoundError:
        errors.append(f"Catalog not found: {layout.catalog_path}")
        return {"valid": False, "errors": errors, "warnings": warnings}
    except (OSError, ValueError) as e:
        errors.append(f"Invalid catalog: {e}")
        return {"valid": False, "errors": errors, "warnings": warnings}

    if len(set(tables)) != len(tables):
        warnings.append("Catalog lists duplicate table names")

    for table in tables:
        try:
            layout.check_table_name(table)
        except ValueError as e:
            errors.append(str(e))
            continue

        try:
            metadata: TableMetadata | None = layout.read_metadata(table)
        except ValidationError as e:
            errors.append(f"{table}: invalid metadata: {e.error_count()} error(s)")
            continue
        except json.JSONDecodeError as e:
            errors.append(f"{table}: invalid metadata JSON: {e}")
            continue
        except (OSError, ValueError) as e:
            errors.append(f"{table}: unreadable metadata: {e}")
            continue

        if metadata is None:
            warnings.append(f"{table}: no metadata (table will not be restored)")
            continue

        if (metadata.total_count == 0) != (not metadata.row_files):
            errors.append(
                f"{table}: totalCount={metadata.total_count} "
                f"but {len(metadata.row_files)} shard(s) listed"
            )

        for file_name in metadata.row_files:
            if not layout.shard_path(table, file_name).is_file():
                errors.append(f"{table}: missing shard {file_name}")

    return {"valid": not errors, "errors": errors, "warnings": warnings}
