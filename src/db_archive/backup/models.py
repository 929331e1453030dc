"""Archive metadata and job result models.

``TableMetadata`` is the on-disk per-table descriptor; the remaining
models are the explicit results each operation returns, aggregated by the
job drivers instead of being thrown.

Usage:
    from db_archive.backup.models import TableMetadata

    metadata = TableMetadata(columns=columns, total_count=2450,
                             row_files=["1.json", "2.json", "3.json"])
    metadata.model_dump(by_alias=True, mode="json")
    # {"columns": [...], "totalCount": 2450, "rowFiles": [...]}
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from db_archive.errors import ArchiveUnitError
from db_archive.schema.models import ColumnDefinition

# One archived row: column name -> str | int | float | bool | None
Row = dict[str, Any]


class TableMetadata(BaseModel):
    """Schema snapshot, row count, and shard list for one archived table."""

    model_config = ConfigDict(populate_by_name=True)

    columns: list[ColumnDefinition] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0, alias="totalCount")
    row_files: list[str] = Field(default_factory=list, alias="rowFiles")  # replay order


class Failure(BaseModel):
    """A table- or shard-scoped failure captured during a job."""

    table: str
    kind: str                       # metadata, schema, insert, identity
    detail: str
    shard: str | None = None
    cause: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_error(cls, error: ArchiveUnitError) -> "Failure":
        """Build a failure record from an isolation-class exception."""
        cause = ""
        if error.cause is not None:
            cause = f"{type(error.cause).__name__}: {error.cause}"
        return cls(
            table=error.table,
            kind=error.kind,
            detail=error.detail,
            shard=error.shard,
            cause=cause,
        )


class TableDumpResult(BaseModel):
    """Outcome of dumping one table."""

    table: str
    metadata: TableMetadata
    rows_written: int = 0
    ordering_key: str
    synthesized_key: bool = False


class TableRestoreResult(BaseModel):
    """Outcome of restoring one table."""

    table: str
    total_count: int = 0
    created: bool = False
    columns_added: int = 0
    shards_inserted: int = 0
    rows_inserted: int = 0
    skipped: bool = False           # schema could not be reconciled
    failures: list[Failure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


class BackupSummary(BaseModel):
    """Outcome of a backup job."""

    directory: str
    tables: list[str] = Field(default_factory=list)         # catalog
    dumped: list[TableDumpResult] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)        # filtered out

    @property
    def total_rows(self) -> int:
        return sum(r.rows_written for r in self.dumped)


class RestoreSummary(BaseModel):
    """Outcome of a restore job."""

    directory: str
    results: list[TableRestoreResult] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)        # no metadata file
    skipped: list[str] = Field(default_factory=list)        # filtered out
    failures: list[Failure] = Field(default_factory=list)
    error_log: str | None = None

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def total_rows(self) -> int:
        return sum(r.rows_inserted for r in self.results)
