"""Database adapters package.

Provides the ``DatabaseClient`` Protocol (with its ``SourceClient`` and
``DestinationClient`` halves) and the async PostgreSQL adapter.

Usage:
    from db_archive.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from db_archive.adapters.base import DatabaseClient, DestinationClient, SourceClient
from db_archive.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "SourceClient",
    "DestinationClient",
    "AsyncPostgresAdapter",
]
