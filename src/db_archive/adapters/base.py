"""Database client protocol definitions.

Defines the read side (``SourceClient``) used by the table dumper, the
write side (``DestinationClient``) used by the table restorer, and
``DatabaseClient``, which combines both.  All methods are ``async def`` --
the library is async-first, but the engine awaits every call in sequence.

Usage:
    from db_archive.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        columns = await client.get_columns("orders")
        rows = await client.select_page("orders", "id", offset=0, limit=1000)
        await client.insert_many("orders_copy", rows, columns)
        await client.close()
"""

from typing import Any, Protocol

from db_archive.schema.models import ColumnDefinition


class SourceClient(Protocol):
    """Read interface a table dump needs."""

    async def get_table_names(self) -> list[str]:
        """List every base table, in a stable order.

        Returns:
            Table names; this becomes the archive catalog.
        """
        ...

    async def get_columns(self, table: str) -> list[ColumnDefinition]:
        """Get the column schema of a table in ordinal order.

        Args:
            table: Table name.

        Returns:
            One ``ColumnDefinition`` per column, with type, length,
            nullability, and identity flag.

        Example:
            columns = await client.get_columns("orders")
            identity = [c.name for c in columns if c.is_identity]
        """
        ...

    async def count(self, table: str) -> int:
        """Return the table's current row count."""
        ...

    async def add_identity_column(self, table: str, column: str) -> None:
        """Add a monotonically increasing surrogate key column to a table.

        Only called when the table has no identity column to paginate by.
        Existing rows are numbered by the database.

        Args:
            table: Table name.
            column: Name of the surrogate column to add.
        """
        ...

    async def select_page(
        self,
        table: str,
        order_by: str,
        offset: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Fetch rows ``[offset, offset + limit)`` ordered by ``order_by``.

        Values are returned already encoded for the archive (ISO-8601
        strings for temporal values, base64 strings for binary).

        Example:
            rows = await client.select_page("orders", "id", offset=2000, limit=1000)
        """
        ...


class DestinationClient(Protocol):
    """Write interface a table restore needs."""

    async def table_exists(self, table: str) -> bool:
        """Return ``True`` if the table exists in the destination."""
        ...

    async def get_column_names(self, table: str) -> set[str]:
        """Return the set of column names currently defined on a table."""
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Used for CREATE TABLE / ALTER TABLE during reconciliation.  Adapters
        that cannot run DDL should raise ``NotImplementedError``.

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.
        """
        ...

    async def insert_many(
        self,
        table: str,
        rows: list[dict[str, Any]],
        columns: list[ColumnDefinition],
    ) -> int:
        """Insert a batch of rows as one unit.

        Archived values are converted to the declared column types here, at
        insert time.  Keys not among ``columns`` are ignored.  Either every
        row is inserted or none is.

        Returns:
            Number of rows inserted.

        Raises:
            Exception: On any type or constraint violation.
        """
        ...

    async def reset_identity(self, table: str, column: str) -> None:
        """Advance the identity sequence of ``column`` past its max value."""
        ...


class DatabaseClient(SourceClient, DestinationClient, Protocol):
    """Database client interface that all adapters must implement.

    Both backup and restore use a single shared session reused
    sequentially; callers must ``await`` every operation.
    """

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
