"""Export one table into an archive as paged JSON shards.

Pages are read by offset over a stable ordering key.  When a table has no
identity column, ``archive_row_id`` is added to the live table first and to
the exported schema, so restore recreates it the same way.

Read errors are not caught here: a table without a metadata file is
ignored by restore, so aborting the job keeps the archive consistent.
"""

import logging
import math
from collections.abc import Callable

from db_archive.adapters.base import SourceClient
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import TableDumpResult, TableMetadata
from db_archive.schema.models import ColumnDefinition

logger = logging.getLogger(__name__)

SURROGATE_KEY = "archive_row_id"


def select_ordering_key(columns: list[ColumnDefinition]) -> str | None:
    """Return the name of the first identity column, or ``None``."""
    for column in columns:
        if column.is_identity:
            return column.name
    return None


def page_count(total: int, page_size: int) -> int:
    """Number of shards for ``total`` rows.

    Examples:
        >>> page_count(0, 1000), page_count(1000, 1000), page_count(2450, 1000)
        (0, 1, 3)
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if total <= 0:
        return 0
    return math.ceil(total / page_size)


async def dump_table(
    client: SourceClient,
    layout: ArchiveLayout,
    table: str,
    page_size: int,
    progress: Callable[[float], None] | None = None,
    on_count: Callable[[int], None] | None = None,
) -> TableDumpResult:
    """Dump ``table`` into ``layout``.

    Args:
        client: Source database.
        layout: Archive being written.
        table: Table to export.
        page_size: Maximum rows per shard.
        progress: Called with ``(p - 1) / pages`` after each page.
        on_count: Called once with the captured row count.

    Returns:
        The written metadata and how many rows were exported.

    Example:
        result = await dump_table(client, layout, "orders", 1000)
        result.metadata.row_files
        # ['1.json', '2.json', '3.json']
    """
    columns = await client.get_columns(table)
    ordering_key = select_ordering_key(columns)
    synthesized = False
    if ordering_key is None:
        logger.info("Table %s has no identity column; adding %s", table, SURROGATE_KEY)
        await client.add_identity_column(table, SURROGATE_KEY)
        columns = [
            *columns,
            ColumnDefinition(
                name=SURROGATE_KEY,
                data_type="bigint",
                nullable=False,
                is_identity=True,
            ),
        ]
        ordering_key = SURROGATE_KEY
        synthesized = True

    total = await client.count(table)
    if on_count is not None:
        on_count(total)

    pages = page_count(total, page_size)
    # A single page fetches exactly the captured count
    limit = total if pages == 1 else page_size

    row_files: list[str] = []
    fetched = 0
    for page in range(1, pages + 1):
        rows = await client.select_page(
            table, ordering_key, offset=(page - 1) * page_size, limit=limit
        )
        file_name = layout.shard_name(page)
        layout.write_shard(table, file_name, rows)
        row_files.append(file_name)
        fetched += len(rows)
        logger.debug("Wrote %s/%s (%d rows)", table, file_name, len(rows))
        if progress is not None:
            progress((page - 1) / pages)

    if fetched != total:
        logger.warning(
            "Table %s: counted %d rows but exported %d; the table changed during backup",
            table,
            total,
            fetched,
        )

    metadata = TableMetadata(columns=columns, total_count=total, row_files=row_files)
    layout.write_metadata(table, metadata)

    return TableDumpResult(
        table=table,
        metadata=metadata,
        rows_written=fetched,
        ordering_key=ordering_key,
        synthesized_key=synthesized,
    )
