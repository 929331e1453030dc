"""Paged JSON archives of whole databases.

Provides the backup and restore job drivers, the per-table dumper and
restorer they run, and the archive layout they share.

Usage:
    from db_archive.backup import backup_database, restore_database, validate_backup
    from db_archive.backup import ArchiveLayout, TableMetadata
"""

from db_archive.backup.backup_restore import (
    JobReporter,
    backup_database,
    restore_database,
    validate_backup,
)
from db_archive.backup.dumper import SURROGATE_KEY, dump_table
from db_archive.backup.errorlog import ErrorLog
from db_archive.backup.filters import include_table, parse_table_list
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import (
    BackupSummary,
    Failure,
    RestoreSummary,
    TableDumpResult,
    TableMetadata,
    TableRestoreResult,
)
from db_archive.backup.restorer import reconcile_schema, restore_table

__all__ = [
    "ArchiveLayout",
    "BackupSummary",
    "ErrorLog",
    "Failure",
    "JobReporter",
    "RestoreSummary",
    "SURROGATE_KEY",
    "TableDumpResult",
    "TableMetadata",
    "TableRestoreResult",
    "backup_database",
    "dump_table",
    "include_table",
    "parse_table_list",
    "reconcile_schema",
    "restore_database",
    "restore_table",
    "validate_backup",
]
