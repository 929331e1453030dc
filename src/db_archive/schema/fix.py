"""Additive schema reconciliation for restore.

Turns a ``SchemaValidationResult`` into DDL: ``CREATE TABLE`` for tables the
destination lacks and ``ALTER TABLE ... ADD COLUMN`` for columns it lacks.
Nothing is ever dropped or retyped, so applying a plan twice is harmless --
the second validation finds nothing missing and the plan is empty.

Usage:
    from db_archive.schema.comparator import validate_schema, expected_columns_for
    from db_archive.schema.fix import generate_fix_plan

    validation = validate_schema(actual, expected_columns_for("orders", columns))
    plan = generate_fix_plan(validation, {"orders": columns})
    for sql in plan.statements():
        await client.execute(sql)
"""

from dataclasses import dataclass, field

from db_archive.schema.models import ColumnDefinition, SchemaValidationResult


# Archive types that carry a length/precision suffix in DDL
_SIZED_TYPES = {"varchar", "char", "bit", "varbit"}
_PRECISION_TYPES = {"numeric", "decimal"}


def quote_ident(name: str) -> str:
    """Quote an SQL identifier (preserves case, escapes embedded quotes)."""
    return '"' + name.replace('"', '""') + '"'


def column_type_sql(column: ColumnDefinition) -> str:
    """Render a column's declared type, with length or precision when known.

    Example:
        >>> column_type_sql(ColumnDefinition(name="n", type="varchar", length=50))
        'varchar(50)'
    """
    data_type = column.data_type
    if column.length and data_type in _SIZED_TYPES:
        return f"{data_type}({column.length})"
    if column.length and data_type in _PRECISION_TYPES:
        if column.scale is not None:
            return f"{data_type}({column.length},{column.scale})"
        return f"{data_type}({column.length})"
    return data_type


def column_definition_sql(column: ColumnDefinition) -> str:
    """Render a full column definition for ``CREATE TABLE``.

    Identity columns are created ``GENERATED BY DEFAULT`` so archived key
    values can be inserted explicitly.
    """
    parts = [quote_ident(column.name), column_type_sql(column)]
    if column.is_identity:
        parts.append("GENERATED BY DEFAULT AS IDENTITY")
    if not column.nullable:
        parts.append("NOT NULL")
    return " ".join(parts)


# ------------------------------------------------------------------
# Fix data classes
# ------------------------------------------------------------------


@dataclass
class ColumnFix:
    """A column to be added via ALTER TABLE.

    Example:
        fix = ColumnFix(table="users", column=ColumnDefinition(
            name="email", type="text", nullable=False))
        fix.to_sql()
        # 'ALTER TABLE "users" ADD COLUMN IF NOT EXISTS "email" text;'
    """

    table: str
    column: ColumnDefinition

    def to_sql(self) -> str:
        """Generate ALTER TABLE ADD COLUMN statement.

        NOT NULL and identity are dropped: the table may already hold rows
        that have no value for the new column.
        """
        definition = f"{quote_ident(self.column.name)} {column_type_sql(self.column)}"
        return (
            f"ALTER TABLE {quote_ident(self.table)} "
            f"ADD COLUMN IF NOT EXISTS {definition};"
        )


@dataclass
class TableFix:
    """A table to be created from its archived columns.

    Example:
        fix = TableFix(table="users", columns=[...])
        fix.to_sql()
        # 'CREATE TABLE IF NOT EXISTS "users" ("id" integer NOT NULL, ...);'
    """

    table: str
    columns: list[ColumnDefinition]

    def to_sql(self) -> str:
        """Return the CREATE TABLE statement."""
        body = ", ".join(column_definition_sql(c) for c in self.columns)
        return f"CREATE TABLE IF NOT EXISTS {quote_ident(self.table)} ({body});"


@dataclass
class FixPlan:
    """Plan for reconciling a destination with archived tables.

    Attributes:
        missing_tables: Tables that need to be created from scratch.
        missing_columns: Columns to add via ALTER TABLE.
        error: Error message if plan generation failed.
    """

    missing_tables: list[TableFix] = field(default_factory=list)
    missing_columns: list[ColumnFix] = field(default_factory=list)
    error: str | None = None

    @property
    def has_fixes(self) -> bool:
        """True if there are any fixes to apply."""
        return bool(self.missing_tables or self.missing_columns)

    @property
    def fix_count(self) -> int:
        """Total number of fixes."""
        return len(self.missing_tables) + len(self.missing_columns)

    def statements(self) -> list[str]:
        """DDL in execution order: table creates, then column additions."""
        return [tf.to_sql() for tf in self.missing_tables] + [
            cf.to_sql() for cf in self.missing_columns
        ]


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


def generate_fix_plan(
    validation_result: SchemaValidationResult,
    column_definitions: dict[str, list[ColumnDefinition]],
) -> FixPlan:
    """Generate an additive plan to fix schema drift.

    Pure sync logic.

    Args:
        validation_result: Result from ``validate_schema(actual, expected)``.
        column_definitions: Mapping of table name to its archived columns,
            in archive order.

    Returns:
        ``FixPlan``. Missing columns keep the archive's column order. If a
        table or column has no definition, ``plan.error`` is set and the
        plan is returned without further fixes.

    Example:
        plan = generate_fix_plan(validation, {"orders": metadata.columns})
        if plan.has_fixes:
            for sql in plan.statements():
                await client.execute(sql)
    """
    plan = FixPlan()

    if validation_result.error_count == 0:
        return plan

    for table in validation_result.missing_tables:
        columns = column_definitions.get(table)
        if not columns:
            plan.error = f"No column definitions for table {table}"
            return plan
        plan.missing_tables.append(TableFix(table=table, columns=list(columns)))

    missing_by_table: dict[str, set[str]] = {}
    for diff in validation_result.missing_columns:
        missing_by_table.setdefault(diff.table, set()).add(diff.column)

    for table, missing in missing_by_table.items():
        by_name = {c.name: c for c in column_definitions.get(table, [])}
        unknown = sorted(missing - by_name.keys())
        if unknown:
            plan.error = f"Unknown column definition for {table}.{unknown[0]}"
            return plan
        # Archive order, not the validator's sorted order
        for column in column_definitions[table]:
            if column.name in missing:
                plan.missing_columns.append(ColumnFix(table=table, column=column))

    return plan
