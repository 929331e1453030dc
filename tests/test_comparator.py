"""Tests for the set-based schema comparator.

validate_schema() compares the columns an archive expects with the
columns a destination holds; expected_columns_for() builds the expected
mapping from archived column definitions.
"""

import inspect

from db_archive.schema.comparator import expected_columns_for, validate_schema
from db_archive.schema.models import (
    ColumnDefinition,
    ColumnDiff,
    SchemaValidationResult,
)


class TestFunctionSignature:
    """validate_schema() takes actual then expected columns."""

    def test_param_order(self) -> None:
        params = list(inspect.signature(validate_schema).parameters)
        assert params == ["actual_columns", "expected_columns"]

    def test_return_type_is_schema_validation_result(self) -> None:
        sig = inspect.signature(validate_schema)
        assert sig.return_annotation is SchemaValidationResult


class TestValidSchemas:
    """Cases where nothing is missing."""

    def test_exact_match(self) -> None:
        actual = {"users": {"id", "name", "email"}}
        expected = {"users": {"id", "name", "email"}}

        result = validate_schema(actual, expected)

        assert result.valid is True
        assert result.missing_tables == []
        assert result.missing_columns == []
        assert result.extra_tables == []

    def test_actual_has_extra_columns(self) -> None:
        """Columns the archive does not know are ignored -- still valid."""
        actual = {"users": {"id", "name", "email", "created_at"}}
        expected = {"users": {"id", "name", "email"}}

        result = validate_schema(actual, expected)

        assert result.valid is True

    def test_empty_expected_returns_valid(self) -> None:
        actual = {"users": {"id", "name"}, "orders": {"id", "total"}}

        result = validate_schema(actual, {})

        assert result.valid is True
        assert result.extra_tables == ["orders", "users"]

    def test_managed_tables_present(self) -> None:
        """Install-state check: expected tables with no required columns."""
        actual = {"site_config": {"id"}, "users": {"id"}}
        expected: dict[str, set[str]] = {"site_config": set(), "users": set()}

        assert validate_schema(actual, expected).valid is True


class TestMissingTables:
    def test_missing_table_detected(self) -> None:
        actual = {"users": {"id", "name"}}
        expected = {"users": {"id", "name"}, "orders": {"id", "total"}}

        result = validate_schema(actual, expected)

        assert result.valid is False
        assert result.missing_tables == ["orders"]
        assert result.missing_columns == []

    def test_missing_and_extra_tables(self) -> None:
        result = validate_schema({"t1": {"a"}}, {"t2": {"a"}})

        assert result.missing_tables == ["t2"]
        assert result.extra_tables == ["t1"]


class TestMissingColumns:
    def test_missing_column_detected(self) -> None:
        result = validate_schema({"users": {"id"}}, {"users": {"id", "email"}})

        assert result.valid is False
        assert result.missing_columns == [
            ColumnDiff(
                table="users",
                column="email",
                message="Column 'email' missing from table 'users'",
            )
        ]

    def test_missing_columns_sorted(self) -> None:
        result = validate_schema({"users": {"id"}}, {"users": {"id", "zeta", "alpha"}})

        assert [d.column for d in result.missing_columns] == ["alpha", "zeta"]

    def test_error_count(self) -> None:
        result = validate_schema(
            {"users": {"id"}},
            {"users": {"id", "email"}, "orders": {"id"}},
        )

        assert result.error_count == 2


class TestExpectedColumnsFor:
    def test_builds_single_table_mapping(self) -> None:
        columns = [
            ColumnDefinition(name="id", type="int"),
            ColumnDefinition(name="name", type="text"),
        ]

        assert expected_columns_for("users", columns) == {"users": {"id", "name"}}


class TestFormatReport:
    def test_valid_report(self) -> None:
        assert validate_schema({}, {}).format_report() == "Schema valid"

    def test_lists_findings(self) -> None:
        report = validate_schema(
            {"users": {"id"}, "legacy": {"id"}},
            {"users": {"id", "email"}, "orders": {"id"}},
        ).format_report()

        assert "Missing tables (1):" in report
        assert "- orders" in report
        assert "- users.email" in report
        assert "Extra tables (warning): legacy" in report
