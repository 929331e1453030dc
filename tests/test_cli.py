"""Tests for the db-archive command line.

Parser shape, the default archive directory, and exit codes of each
command with the connection factory patched to an in-memory database.
"""

from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeDatabase, make_columns
from db_archive.cli import build_parser, default_backup_directory, main
from db_archive.errors import ConnectivityError, PreconditionError

CONNECTION = ["--database", "postgres", "--connection", "postgresql://u:p@h/db"]


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("DB_PROFILE", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _source() -> FakeDatabase:
    db = FakeDatabase()
    db.add_table(
        "orders",
        make_columns("id", "item"),
        [{"id": i, "item": f"item-{i}"} for i in range(1, 6)],
    )
    db.add_table("notes", make_columns("body", identity=None), [{"body": "x"}])
    return db


# ============================================================================
# Parser
# ============================================================================


class TestBuildParser:
    def test_backup_defaults(self) -> None:
        args = build_parser().parse_args(["backup"])

        assert args.directory is None
        assert args.page_size is None
        assert args.env_prefix == ""
        assert args.verbose is False

    def test_backup_options(self) -> None:
        args = build_parser().parse_args(
            ["-v", "backup", "-d", "out", "--page-size", "50", "--excludes", "a,b"]
        )

        assert args.verbose is True
        assert args.directory == "out"
        assert args.page_size == 50
        assert args.excludes == "a,b"

    @pytest.mark.parametrize("command", ["restore", "validate"])
    def test_directory_required(self, command: str) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([command])

    def test_restore_options(self) -> None:
        args = build_parser().parse_args(
            ["restore", "-d", "in", "--profile", "staging", "--log-dir", "var/log"]
        )

        assert args.directory == "in"
        assert args.profile == "staging"
        assert args.log_dir == "var/log"
        assert args.force is False

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestDefaultBackupDirectory:
    def test_dated_directory(self) -> None:
        assert default_backup_directory(date(2026, 1, 15)) == "backup/2026-01-15"


# ============================================================================
# backup
# ============================================================================


class TestBackupCommand:
    def test_success(self, tmp_path: Path) -> None:
        source = _source()

        with patch("db_archive.cli.connect", AsyncMock(return_value=source)):
            code = main(["backup", "-d", "arch", "--page-size", "2", *CONNECTION])

        assert code == 0
        assert source.closed is True
        assert (tmp_path / "arch" / "tables.json").exists()
        assert sorted(p.name for p in (tmp_path / "arch" / "orders").iterdir()) == [
            "1.json",
            "2.json",
            "3.json",
        ]

    def test_default_directory_is_dated(self, tmp_path: Path) -> None:
        with patch("db_archive.cli.connect", AsyncMock(return_value=_source())), \
             patch("db_archive.cli.default_backup_directory", return_value="backup/today"):
            code = main(["backup", *CONNECTION])

        assert code == 0
        assert (tmp_path / "backup" / "today" / "tables.json").exists()

    def test_configuration_error(self) -> None:
        with patch("db_archive.cli.connect", AsyncMock()) as mock_connect:
            code = main(["backup", "--database", "postgres"])

        assert code == 1
        mock_connect.assert_not_awaited()

    def test_connectivity_error(self) -> None:
        failing = AsyncMock(side_effect=ConnectivityError("Connection refused"))

        with patch("db_archive.cli.connect", failing):
            code = main(["backup", "-d", "arch", *CONNECTION])

        assert code == 1

    def test_existing_archive_refused(self, tmp_path: Path) -> None:
        (tmp_path / "arch").mkdir()
        (tmp_path / "arch" / "tables.json").write_text("[]")

        with patch("db_archive.cli.connect", AsyncMock()) as mock_connect:
            code = main(["backup", "-d", "arch", *CONNECTION])

        assert code == 1
        mock_connect.assert_not_awaited()

    def test_dump_failure_is_fatal(self) -> None:
        source = _source()
        source.failing_reads.add("orders")

        with patch("db_archive.cli.connect", AsyncMock(return_value=source)):
            code = main(["backup", "-d", "arch", *CONNECTION])

        assert code == 1
        assert source.closed is True


# ============================================================================
# restore
# ============================================================================


def _backup(tmp_path: Path) -> None:
    with patch("db_archive.cli.connect", AsyncMock(return_value=_source())):
        assert main(["backup", "-d", "arch", "--page-size", "2", *CONNECTION]) == 0


class TestRestoreCommand:
    def test_success(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)):
            code = main(["restore", "-d", "arch", *CONNECTION])

        assert code == 0
        assert destination.closed is True
        assert len(destination.rows["orders"]) == 5
        assert len(destination.rows["notes"]) == 1

    def test_includes_limit_tables(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)):
            code = main(["restore", "-d", "arch", "--includes", "ORDERS", *CONNECTION])

        assert code == 0
        assert set(destination.rows) == {"orders"}

    def test_missing_archive(self) -> None:
        with patch("db_archive.cli.connect", AsyncMock()) as mock_connect:
            code = main(["restore", "-d", "nowhere", *CONNECTION])

        assert code == 1
        mock_connect.assert_not_awaited()

    def test_precondition_refusal(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()
        refuse = AsyncMock(side_effect=PreconditionError("Schema already installed"))

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)), \
             patch("db_archive.cli.check_not_installed", refuse):
            code = main(["restore", "-d", "arch", *CONNECTION])

        assert code == 1
        assert destination.statements == []
        assert destination.closed is True

    def test_populated_destination_refused(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()
        destination.add_table("orders", make_columns("id", "item"), [{"id": 99, "item": "x"}])

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)):
            code = main(["restore", "-d", "arch", *CONNECTION])

        assert code == 1
        assert destination.statements == []
        assert len(destination.rows["orders"]) == 1

    def test_force_skips_install_check(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()
        destination.add_table("orders", make_columns("id", "item"), [{"id": 99, "item": "x"}])

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)):
            code = main(["restore", "-d", "arch", "--force", *CONNECTION])

        assert code == 0
        assert len(destination.rows["orders"]) == 6
        assert len(destination.rows["notes"]) == 1

    def test_failures_still_exit_zero(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        destination = FakeDatabase()
        destination.failing_batches["orders"] = {2}

        with patch("db_archive.cli.connect", AsyncMock(return_value=destination)):
            code = main(
                ["restore", "-d", "arch", "--log-dir", "var/log", *CONNECTION]
            )

        assert code == 0
        assert len(destination.rows["orders"]) == 3
        logs = list((tmp_path / "var" / "log").glob("restore-*.log"))
        assert len(logs) == 1
        assert "orders / 2.json (insert)" in logs[0].read_text()


# ============================================================================
# validate / profiles
# ============================================================================


class TestValidateCommand:
    def test_valid_archive(self, tmp_path: Path) -> None:
        _backup(tmp_path)

        assert main(["validate", "-d", "arch"]) == 0

    def test_missing_shard(self, tmp_path: Path) -> None:
        _backup(tmp_path)
        (tmp_path / "arch" / "orders" / "2.json").unlink()

        assert main(["validate", "-d", "arch"]) == 1

    def test_missing_directory(self) -> None:
        assert main(["validate", "-d", "nowhere"]) == 1


class TestProfilesCommand:
    def test_lists_profiles(self, tmp_path: Path) -> None:
        (tmp_path / "db.toml").write_text(
            '[profiles.prod]\nurl = "postgresql://h/db"\ndescription = "Production"\n'
        )

        assert main(["profiles"]) == 0

    def test_missing_config(self) -> None:
        assert main(["profiles", "-c", "missing.toml"]) == 1
