"""Import one archived table into a destination database.

Failures are isolated: a schema failure skips the table, a shard failure
skips the shard.  Both come back as ``Failure`` records on the
``TableRestoreResult`` instead of propagating.

Usage:
    from db_archive.backup.restorer import restore_table

    metadata = layout.read_metadata("orders")
    result = await restore_table(client, layout, "orders", metadata)
    for failure in result.failures:
        print(failure.shard, failure.detail)
"""

import logging
from collections.abc import Callable

from db_archive.adapters.base import DestinationClient
from db_archive.backup.layout import ArchiveLayout
from db_archive.backup.models import Failure, TableMetadata, TableRestoreResult
from db_archive.errors import (
    BatchInsertError,
    IdentityResetError,
    SchemaReconciliationError,
)
from db_archive.schema.comparator import expected_columns_for, validate_schema
from db_archive.schema.fix import generate_fix_plan
from db_archive.schema.models import ColumnDefinition

logger = logging.getLogger(__name__)


async def reconcile_schema(
    client: DestinationClient,
    table: str,
    columns: list[ColumnDefinition],
) -> tuple[bool, int]:
    """Create the table or add its missing columns.

    Additive only.  A second call against the same destination finds
    nothing missing and issues no DDL.

    Returns:
        ``(created, columns_added)``.

    Raises:
        SchemaReconciliationError: If introspection, planning, or any DDL
            statement fails.
    """
    try:
        actual: dict[str, set[str]] = {}
        if await client.table_exists(table):
            actual[table] = await client.get_column_names(table)

        validation = validate_schema(actual, expected_columns_for(table, columns))
        plan = generate_fix_plan(validation, {table: columns})
    except Exception as e:
        raise SchemaReconciliationError(table, "Schema introspection failed", cause=e) from e

    if plan.error:
        raise SchemaReconciliationError(table, plan.error)
    if plan.has_fixes:
        logger.debug("%s: %d schema fix(es) planned", table, plan.fix_count)

    for sql in plan.statements():
        logger.debug("Executing: %s", sql)
        try:
            await client.execute(sql)
        except Exception as e:
            action = "Create table" if plan.missing_tables else "Add column"
            raise SchemaReconciliationError(table, f"{action} failed", cause=e) from e

    return bool(plan.missing_tables), len(plan.missing_columns)


async def restore_table(
    client: DestinationClient,
    layout: ArchiveLayout,
    table: str,
    metadata: TableMetadata,
    progress: Callable[[float], None] | None = None,
) -> TableRestoreResult:
    """Restore one table from its archived shards.

    Args:
        client: Destination database.
        layout: Archive being read.
        table: Table to restore.
        metadata: The table's archived metadata.
        progress: Called with the fraction of shards processed.

    Returns:
        Per-table outcome, including every isolated failure.
    """
    result = TableRestoreResult(table=table, total_count=metadata.total_count)

    try:
        result.created, result.columns_added = await reconcile_schema(
            client, table, metadata.columns
        )
    except SchemaReconciliationError as e:
        logger.error("Skipping %s: %s", table, e)
        result.skipped = True
        result.failures.append(Failure.from_error(e))
        return result

    shards = metadata.row_files
    for index, file_name in enumerate(shards, start=1):
        try:
            rows = layout.read_shard(table, file_name)
        except (OSError, ValueError) as e:
            error = BatchInsertError(table, "Shard could not be read", cause=e, shard=file_name)
            logger.error("%s/%s: %s", table, file_name, error)
            result.failures.append(Failure.from_error(error))
            continue

        try:
            inserted = await client.insert_many(table, rows, metadata.columns)
        except Exception as e:
            error = BatchInsertError(table, "Batch insert failed", cause=e, shard=file_name)
            logger.error("%s/%s: %s", table, file_name, error)
            result.failures.append(Failure.from_error(error))
        else:
            result.shards_inserted += 1
            result.rows_inserted += inserted

        if progress is not None:
            progress(index / len(shards))

    if result.rows_inserted:
        for column in metadata.columns:
            if not column.is_identity:
                continue
            try:
                await client.reset_identity(table, column.name)
            except Exception as e:
                error = IdentityResetError(
                    table, f"Identity reset failed for column {column.name}", cause=e
                )
                logger.warning("%s", error)
                result.failures.append(Failure.from_error(error))

    return result
