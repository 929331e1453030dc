"""Tests for the job error log."""

import logging
from datetime import datetime

from db_archive.backup.errorlog import ErrorLog, format_failure
from db_archive.backup.models import Failure
from db_archive.errors import BatchInsertError, SchemaReconciliationError


def _insert_failure(shard: str = "2.json") -> Failure:
    error = BatchInsertError(
        "orders", "Batch insert failed", cause=ValueError("bad date"), shard=shard
    )
    return Failure.from_error(error)


class TestFailureFromError:
    def test_fields_copied(self):
        failure = _insert_failure()

        assert failure.table == "orders"
        assert failure.kind == "insert"
        assert failure.shard == "2.json"
        assert failure.detail == "Batch insert failed"
        assert failure.cause == "ValueError: bad date"

    def test_no_cause(self):
        failure = Failure.from_error(SchemaReconciliationError("orders", "No column definitions"))

        assert failure.kind == "schema"
        assert failure.cause == ""
        assert failure.shard is None


class TestFormatFailure:
    def test_block_layout(self):
        failure = _insert_failure()
        failure.timestamp = datetime(2026, 1, 15, 9, 30, 0)

        lines = format_failure(failure).splitlines()

        assert lines[0] == "[2026-01-15 09:30:00] orders / 2.json (insert)"
        assert lines[1] == "Batch insert failed"
        assert lines[2] == "ValueError: bad date"
        assert set(lines[3]) == {"-"}


class TestErrorLog:
    def test_for_job_name(self, tmp_path):
        log = ErrorLog.for_job(tmp_path, "restore", now=datetime(2026, 1, 15, 9, 30, 5))

        assert log.path == tmp_path / "restore-20260115-093005.log"

    def test_created_lazily(self, tmp_path):
        log = ErrorLog(tmp_path / "logs" / "restore.log")
        log.append("orders", [])

        assert not log.path.exists()
        assert log.count == 0

    def test_appends_across_tables(self, tmp_path):
        log = ErrorLog(tmp_path / "logs" / "restore.log")

        log.append("orders", [_insert_failure("1.json"), _insert_failure("3.json")])
        log.append("users", [Failure.from_error(SchemaReconciliationError("users", "Create table failed"))])

        text = log.path.read_text()
        assert log.count == 3
        assert text.count("orders / 1.json") == 1
        assert text.count("orders / 3.json") == 1
        assert "users (schema)" in text

    def test_write_error_never_raises(self, tmp_path, caplog):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        log = ErrorLog(blocker / "restore.log")

        with caplog.at_level(logging.ERROR, logger="db_archive.backup.errorlog"):
            log.append("orders", [_insert_failure()])

        assert log.count == 1
        assert log.write_errors == 1
        assert "Could not write 1 failure(s) for orders" in caplog.text
