"""PostgreSQL schema introspection via information_schema (async).

Used before a job touches the archive: verifies connectivity and reports
which tables (and columns) the database already holds, so the restore
install-state gate can run before any DDL is issued.

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.

Usage:
    async with SchemaIntrospector(database_url) as introspector:
        await introspector.test_connection()
        tables = await introspector.get_table_names()
        columns = await introspector.get_column_names()
"""

import psycopg
from psycopg import AsyncConnection


def to_libpq_url(database_url: str) -> str:
    """Strip SQLAlchemy driver suffixes so libpq accepts the URL.

    Example:
        >>> to_libpq_url("postgresql+asyncpg://u@h/db")
        'postgresql://u@h/db'
    """
    for prefix in ("postgresql+asyncpg://", "postgresql+psycopg://"):
        if database_url.startswith(prefix):
            return "postgresql://" + database_url[len(prefix):]
    return database_url


class SchemaIntrospector:
    """Introspects a PostgreSQL database's tables and columns.

    Works with any PostgreSQL database (RDS, Supabase, local).

    Args:
        database_url: PostgreSQL connection URL.
        connect_timeout: Seconds before a connection attempt is abandoned.
        excluded_tables: Table names never reported (system/extension tables).
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = frozenset({
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    })

    def __init__(
        self,
        database_url: str,
        connect_timeout: int = 10,
        excluded_tables: set[str] | None = None,
    ) -> None:
        self._database_url = to_libpq_url(database_url)
        self._connect_timeout = connect_timeout
        self._excluded_tables = (
            frozenset(excluded_tables)
            if excluded_tables is not None
            else self.EXCLUDED_TABLES
        )
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the async connection."""
        self._conn = await psycopg.AsyncConnection.connect(
            self._database_url,
            connect_timeout=self._connect_timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the async connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> AsyncConnection:
        if self._conn is None:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` on the open connection.

        Returns:
            ``True`` if the query succeeds.

        Raises:
            ConnectionError: If the query fails.
        """
        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                row = await cur.fetchone()
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e
        return row is not None and row[0] == 1

    async def get_table_names(self, schema_name: str = "public") -> list[str]:
        """Get all base table names in schema, sorted."""
        conn = self._require_conn()
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            rows = await cur.fetchall()
        return [row[0] for row in rows if row[0] not in self._excluded_tables]

    async def get_column_names(self, schema_name: str = "public") -> dict[str, set[str]]:
        """Get column names for all tables.

        Returns:
            Dict mapping table name to set of column names.
        """
        conn = self._require_conn()
        query = """
            SELECT table_name, column_name
            FROM information_schema.columns
            WHERE table_schema = %s
        """
        tables = await self.get_table_names(schema_name)
        result: dict[str, set[str]] = {t: set() for t in tables}

        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            for table_name, column_name in await cur.fetchall():
                if table_name in result:
                    result[table_name].add(column_name)

        return result
