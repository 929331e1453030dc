"""Tests for SchemaIntrospector with a mocked psycopg connection."""

from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from db_archive.schema.introspector import SchemaIntrospector, to_libpq_url


def _mock_connection(fetchall=None, fetchone=None) -> tuple[MagicMock, MagicMock]:
    cur = MagicMock()
    cur.execute = AsyncMock()
    cur.fetchall = AsyncMock(side_effect=fetchall or [[]])
    cur.fetchone = AsyncMock(return_value=fetchone)

    cursor_ctx = MagicMock()
    cursor_ctx.__aenter__ = AsyncMock(return_value=cur)
    cursor_ctx.__aexit__ = AsyncMock(return_value=False)

    conn = MagicMock()
    conn.cursor.return_value = cursor_ctx
    conn.close = AsyncMock()
    return conn, cur


def _patch_connect(conn: MagicMock):
    return patch(
        "db_archive.schema.introspector.psycopg.AsyncConnection.connect",
        new=AsyncMock(return_value=conn),
    )


class TestToLibpqUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql+asyncpg://u:p@h/db", "postgresql://u:p@h/db"),
            ("postgresql+psycopg://u:p@h/db", "postgresql://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql://u:p@h/db"),
        ],
    )
    def test_strips_driver(self, url: str, expected: str) -> None:
        assert to_libpq_url(url) == expected


class TestConnectionLifecycle:
    @pytest.mark.asyncio
    async def test_connects_with_timeout_and_closes(self) -> None:
        conn, _ = _mock_connection()

        with _patch_connect(conn) as mock_connect:
            async with SchemaIntrospector("postgresql+asyncpg://u@h/db", connect_timeout=3):
                pass

        mock_connect.assert_awaited_once_with("postgresql://u@h/db", connect_timeout=3)
        conn.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requires_context_manager(self) -> None:
        introspector = SchemaIntrospector("postgresql://u@h/db")

        with pytest.raises(RuntimeError, match="not connected"):
            await introspector.get_table_names()

    @pytest.mark.asyncio
    async def test_connection_ok(self) -> None:
        conn, cur = _mock_connection(fetchone=(1,))

        with _patch_connect(conn):
            async with SchemaIntrospector("postgresql://u@h/db") as introspector:
                assert await introspector.test_connection() is True

        cur.execute.assert_awaited_once_with("SELECT 1")

    @pytest.mark.asyncio
    async def test_connection_failure_raises_connection_error(self) -> None:
        conn, cur = _mock_connection()
        cur.execute.side_effect = psycopg.OperationalError("server closed the connection")

        with _patch_connect(conn):
            async with SchemaIntrospector("postgresql://u@h/db") as introspector:
                with pytest.raises(ConnectionError, match="Connection test failed"):
                    await introspector.test_connection()


class TestTableAndColumnNames:
    @pytest.mark.asyncio
    async def test_excluded_tables_filtered(self) -> None:
        conn, _ = _mock_connection(
            fetchall=[[("orders",), ("schema_migrations",), ("users",)]]
        )

        with _patch_connect(conn):
            async with SchemaIntrospector("postgresql://u@h/db") as introspector:
                tables = await introspector.get_table_names()

        assert tables == ["orders", "users"]

    @pytest.mark.asyncio
    async def test_custom_exclusions(self) -> None:
        conn, _ = _mock_connection(fetchall=[[("orders",), ("users",)]])

        with _patch_connect(conn):
            async with SchemaIntrospector(
                "postgresql://u@h/db", excluded_tables={"users"}
            ) as introspector:
                tables = await introspector.get_table_names()

        assert tables == ["orders"]

    @pytest.mark.asyncio
    async def test_column_names_grouped_by_table(self) -> None:
        conn, _ = _mock_connection(
            fetchall=[
                [("orders",), ("empty",)],
                [
                    ("orders", "id"),
                    ("orders", "total"),
                    ("spatial_ref_sys", "srid"),
                ],
            ]
        )

        with _patch_connect(conn):
            async with SchemaIntrospector("postgresql://u@h/db") as introspector:
                columns = await introspector.get_column_names()

        assert columns == {"orders": {"id", "total"}, "empty": set()}
