"""Exception taxonomy for backup and restore jobs.

Two classes of errors exist:

- **Abort class** (``ConfigurationError``, ``ConnectivityError``,
  ``PreconditionError``): surfaced to the operator immediately and stop the
  job before any archive or database I/O.
- **Isolation class** (``SchemaReconciliationError``, ``BatchInsertError``):
  raised for a single table or shard, captured into a ``Failure`` result and
  the job error log, never interrupting the traversal.

Usage:
    from db_archive.errors import ConfigurationError, BatchInsertError

    try:
        await client.insert_many(table, rows, columns)
    except Exception as e:
        raise BatchInsertError(table, "Insert failed", cause=e, shard="2.json") from e
"""


class ArchiveError(Exception):
    """Base class for all db-archive errors."""


# ------------------------------------------------------------------
# Abort class
# ------------------------------------------------------------------


class ConfigurationError(ArchiveError):
    """Raised when connection settings are missing or invalid."""

    pass


class ProfileNotFoundError(ConfigurationError):
    """Raised when no database profile is configured."""

    pass


class ConnectivityError(ArchiveError):
    """Raised when the source or destination database cannot be reached."""

    pass


class PreconditionError(ArchiveError):
    """Raised when the restore target already holds an installed schema."""

    pass


# ------------------------------------------------------------------
# Isolation class
# ------------------------------------------------------------------


class ArchiveUnitError(ArchiveError):
    """A failure scoped to one table or one shard.

    Args:
        table: Table being processed.
        detail: Human-readable description of the failed step.
        cause: Underlying exception, if any.
        shard: Shard file name when the failure is shard-scoped.
    """

    kind = "unit"

    def __init__(
        self,
        table: str,
        detail: str,
        cause: BaseException | None = None,
        shard: str | None = None,
    ) -> None:
        self.table = table
        self.detail = detail
        self.cause = cause
        self.shard = shard
        message = f"{detail}: {cause}" if cause is not None else detail
        super().__init__(message)


class MetadataError(ArchiveUnitError):
    """A table's archived metadata file could not be read; the table is skipped."""

    kind = "metadata"


class SchemaReconciliationError(ArchiveUnitError):
    """Table creation or column addition failed; the table is skipped."""

    kind = "schema"


class BatchInsertError(ArchiveUnitError):
    """A shard failed to insert; remaining shards are still attempted."""

    kind = "insert"


class IdentityResetError(ArchiveUnitError):
    """Identity sequence could not be advanced after a table restore."""

    kind = "identity"
