"""db-archive: whole-database backup and restore through paged JSON archives.

Dumps every table of a PostgreSQL database into a directory of JSON files
(a catalog, per-table metadata, and fixed-size row shards) and restores
such a directory into another database, creating tables and adding
missing columns on the way.  Per-table and per-shard failures on restore
are isolated and logged instead of aborting the job.

Usage:
    from db_archive import build_settings, connect, backup_database
    from db_archive import restore_database, validate_backup, check_not_installed

    settings = build_settings("backup/2026-01-15", profile_name="prod")
    client = await connect(settings)
    summary = await backup_database(client, settings)
"""

__version__ = "0.1.0"

# Adapters
from db_archive.adapters.base import DatabaseClient
from db_archive.adapters.postgres import AsyncPostgresAdapter

# Config
from db_archive.config.loader import load_db_config
from db_archive.config.models import DatabaseConfig, DatabaseProfile, JobSettings

# Errors
from db_archive.errors import (
    ArchiveError,
    BatchInsertError,
    ConfigurationError,
    ConnectivityError,
    IdentityResetError,
    MetadataError,
    PreconditionError,
    ProfileNotFoundError,
    SchemaReconciliationError,
)

# Factory
from db_archive.factory import (
    build_settings,
    check_not_installed,
    connect,
    resolve_url,
)

# Backup and restore
from db_archive.backup.backup_restore import (
    backup_database,
    restore_database,
    validate_backup,
)
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import BackupSummary, RestoreSummary, TableMetadata

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    "JobSettings",
    # Errors
    "ArchiveError",
    "ConfigurationError",
    "ProfileNotFoundError",
    "ConnectivityError",
    "PreconditionError",
    "MetadataError",
    "SchemaReconciliationError",
    "BatchInsertError",
    "IdentityResetError",
    # Factory
    "build_settings",
    "connect",
    "check_not_installed",
    "resolve_url",
    # Backup and restore
    "backup_database",
    "restore_database",
    "validate_backup",
    "ArchiveLayout",
    "TableMetadata",
    "BackupSummary",
    "RestoreSummary",
]
