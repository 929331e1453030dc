"""On-disk layout of an archive directory.

::

    <root>/tables.json          catalog: JSON array of table names
    <root>/<table>.json         TableMetadata
    <root>/<table>/<n>.json     shard n: JSON array of row objects

Paths are a pure function of (root, table, shard), so backup and restore
agree without extra bookkeeping.  Every file is write-once.
"""

import json
from pathlib import Path

from db_archive.backup.models import Row, TableMetadata

CATALOG_FILE = "tables.json"


class ArchiveLayout:
    """Path derivation and file I/O for one archive root.

    Args:
        root: Archive directory.  Not created until ``ensure_root()``.

    Example:
        layout = ArchiveLayout("backup/2026-01-15")
        layout.shard_path("orders", layout.shard_name(2))
        # PosixPath('backup/2026-01-15/orders/2.json')
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def catalog_path(self) -> Path:
        return self.root / CATALOG_FILE

    def metadata_path(self, table: str) -> Path:
        return self.root / f"{table}.json"

    def shard_path(self, table: str, file_name: str) -> Path:
        return self.root / table / file_name

    @staticmethod
    def shard_name(index: int) -> str:
        """File name of the 1-based shard ``index``."""
        if index < 1:
            raise ValueError(f"Shard index must be >= 1, got {index}")
        return f"{index}.json"

    def check_table_name(self, table: str) -> None:
        """Reject names whose files would leave the root or hit the catalog.

        Raises:
            ValueError: If ``table`` cannot be archived under this layout.
        """
        if not table or table in (".", "..") or "/" in table or "\\" in table:
            raise ValueError(f"Table name {table!r} cannot be used as an archive path")
        if f"{table}.json".casefold() == CATALOG_FILE.casefold():
            raise ValueError(
                f"Table name {table!r} collides with the archive catalog {CATALOG_FILE}"
            )

    def exists(self) -> bool:
        return self.root.is_dir()

    def ensure_root(self) -> Path:
        """Create the archive directory if absent."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def write_catalog(self, tables: list[str]) -> None:
        """Write the catalog once.

        Raises:
            FileExistsError: If the catalog was already written.
        """
        with open(self.catalog_path, "x", encoding="utf-8") as f:
            json.dump(list(tables), f, indent=2, ensure_ascii=False)

    def read_catalog(self) -> list[str]:
        """Read the catalog.

        Raises:
            FileNotFoundError: If ``tables.json`` is absent.
            ValueError: If it is not a JSON array of strings.
        """
        with open(self.catalog_path, "r", encoding="utf-8") as f:
            tables = json.load(f)
        if not isinstance(tables, list) or not all(isinstance(t, str) for t in tables):
            raise ValueError(f"{self.catalog_path} is not a list of table names")
        return tables

    # ------------------------------------------------------------------
    # Table metadata
    # ------------------------------------------------------------------

    def write_metadata(self, table: str, metadata: TableMetadata) -> None:
        """Write a table's metadata once.

        Raises:
            FileExistsError: If the metadata was already written.
        """
        with open(self.metadata_path(table), "x", encoding="utf-8") as f:
            json.dump(
                metadata.model_dump(by_alias=True, mode="json"),
                f,
                indent=2,
                ensure_ascii=False,
            )

    def read_metadata(self, table: str) -> TableMetadata | None:
        """Read a table's metadata, or ``None`` if it was never written."""
        path = self.metadata_path(table)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return TableMetadata.model_validate(json.load(f))

    # ------------------------------------------------------------------
    # Shards
    # ------------------------------------------------------------------

    def write_shard(self, table: str, file_name: str, rows: list[Row]) -> Path:
        """Write one shard.

        Raises:
            FileExistsError: If the shard was already written.
        """
        path = self.shard_path(table, file_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "x", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, default=str)
        return path

    def read_shard(self, table: str, file_name: str) -> list[Row]:
        """Read one shard's rows without validating them."""
        with open(self.shard_path(table, file_name), "r", encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"Shard {table}/{file_name} is not a JSON array")
        return rows
