"""Job-scoped error log for non-fatal failures.

Failures are appended as plain-text blocks so operators can read the
post-mortem after a job that finished with partial failures.  The log
never raises: if it cannot be written, the problem is logged and the job
carries on.

Usage:
    error_log = ErrorLog.for_job(Path("logs"), "restore")
    error_log.append("orders", result.failures)
    if error_log.count:
        print(f"{error_log.count} failures logged to {error_log.path}")
"""

import logging
from datetime import datetime
from pathlib import Path

from db_archive.backup.models import Failure

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 72


def format_failure(failure: Failure) -> str:
    """Render one failure as a log block."""
    location = failure.table
    if failure.shard:
        location = f"{failure.table} / {failure.shard}"
    lines = [
        f"[{failure.timestamp:%Y-%m-%d %H:%M:%S}] {location} ({failure.kind})",
        failure.detail,
    ]
    if failure.cause:
        lines.append(failure.cause)
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


class ErrorLog:
    """Append-only failure sink backed by one file.

    The file is created on the first append, so a job without failures
    leaves no log behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.count = 0
        self.write_errors = 0

    @classmethod
    def for_job(
        cls,
        log_dir: str | Path,
        command: str,
        now: datetime | None = None,
    ) -> "ErrorLog":
        """Create a log named ``<command>-<YYYYmmdd-HHMMSS>.log`` in ``log_dir``."""
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        return cls(Path(log_dir) / f"{command}-{stamp}.log")

    def append(self, table: str, failures: list[Failure]) -> None:
        """Persist a table's failures.  Never raises."""
        if not failures:
            return

        self.count += len(failures)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                for failure in failures:
                    f.write(format_failure(failure))
        except OSError as e:
            self.write_errors += 1
            logger.error(
                "Could not write %d failure(s) for %s to %s: %s",
                len(failures),
                table,
                self.path,
                e,
            )
