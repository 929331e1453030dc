"""Pydantic models for column schemas and schema validation."""

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Column Schema
# ============================================================================


class ColumnDefinition(BaseModel):
    """A column captured from the live schema at dump time.

    Serialized with the archive's JSON keys (``type``, ``isIdentity``);
    both the field names and the aliases are accepted on load.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    data_type: str = Field(alias="type")
    length: int | None = None           # character length or numeric precision
    scale: int | None = None            # numeric scale
    nullable: bool = True
    is_identity: bool = Field(default=False, alias="isIdentity")


# ============================================================================
# Validation Result Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A missing column detected during validation."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of schema validation."""

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)  # Warning only

    @property
    def error_count(self) -> int:
        """Count of critical errors (missing tables + missing columns)."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid:
            return "Schema valid"

        lines = ["Schema validation failed:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        if self.extra_tables:
            lines.append(f"\n  Extra tables (warning): {', '.join(self.extra_tables)}")

        return "\n".join(lines)
