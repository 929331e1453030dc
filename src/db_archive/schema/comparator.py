"""Schema comparison using set operations.

Compares the columns an archive expects against the columns present in the
destination database. Pure logic -- no I/O, no database connections.

Used in two places:

- Restore reconciliation: which tables to create and which columns to add.
- The install-state gate: whether every managed table already exists.

Usage:
    from db_archive.schema.comparator import validate_schema, expected_columns_for

    expected = expected_columns_for("orders", metadata.columns)
    actual = {"orders": await client.get_column_names("orders")}

    result = validate_schema(actual, expected)
    for diff in result.missing_columns:
        print(diff.table, diff.column)
"""

from db_archive.schema.models import (
    ColumnDefinition,
    ColumnDiff,
    SchemaValidationResult,
)


def expected_columns_for(
    table: str, columns: list[ColumnDefinition]
) -> dict[str, set[str]]:
    """Build the ``expected_columns`` mapping for a single archived table."""
    return {table: {c.name for c in columns}}


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Validate actual database schema against expected columns.

    Performs pure set operations to find:
    - Missing tables: Tables in *expected_columns* but not in *actual_columns*
    - Missing columns: Columns in *expected_columns* but not in the actual table
    - Extra tables: Tables in *actual_columns* but not in *expected_columns*
      (warning only -- does not affect ``valid`` status)

    Args:
        actual_columns: Dict mapping table name to set of column names
            present in the database.
        expected_columns: Dict mapping table name to set of expected column
            names, e.g. from an archived ``TableMetadata``.

    Returns:
        ``SchemaValidationResult``. ``missing_columns`` preserves the sorted
        column order within each table.

    Examples:
        >>> result = validate_schema(
        ...     {"orders": {"id"}},
        ...     {"orders": {"id", "total"}},
        ... )
        >>> result.missing_columns[0].column
        'total'

        >>> result = validate_schema({}, {"orders": {"id"}})
        >>> result.missing_tables
        ['orders']
    """
    actual_tables: set[str] = set(actual_columns.keys())
    expected_tables: set[str] = set(expected_columns.keys())

    missing_tables: list[str] = sorted(expected_tables - actual_tables)
    extra_tables: list[str] = sorted(actual_tables - expected_tables)

    missing_columns: list[ColumnDiff] = []
    for table_name in sorted(expected_tables & actual_tables):
        missing_cols = expected_columns[table_name] - actual_columns[table_name]

        for col_name in sorted(missing_cols):
            missing_columns.append(
                ColumnDiff(
                    table=table_name,
                    column=col_name,
                    message=f"Column '{col_name}' missing from table '{table_name}'",
                )
            )

    return SchemaValidationResult(
        valid=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_tables=extra_tables,
    )
