"""Schema introspection, comparison, and additive reconciliation.

Provides schema comparison (``validate_schema``), live database
introspection (``SchemaIntrospector``), and the additive DDL planner used
on restore (``generate_fix_plan``).

Usage:
    from db_archive.schema import validate_schema, SchemaIntrospector
    from db_archive.schema import generate_fix_plan, ColumnDefinition
"""

from db_archive.schema.comparator import expected_columns_for, validate_schema
from db_archive.schema.fix import (
    ColumnFix,
    FixPlan,
    TableFix,
    generate_fix_plan,
    quote_ident,
)
from db_archive.schema.introspector import SchemaIntrospector
from db_archive.schema.models import (
    ColumnDefinition,
    ColumnDiff,
    SchemaValidationResult,
)

__all__ = [
    "validate_schema",
    "expected_columns_for",
    "SchemaIntrospector",
    "SchemaValidationResult",
    "ColumnDiff",
    "ColumnDefinition",
    "generate_fix_plan",
    "quote_ident",
    "FixPlan",
    "ColumnFix",
    "TableFix",
]
