from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path

from ..models.issue_record import IssueRecord

"""Issue log buffering.

- JSON Lines, one IssueRecord per line, fixed key set
- One ``logs/issues-YYYYMMDD-HHMMSS.log`` (UTC) per run, created on first flush
- ``RESULTEASE_LOG_DIR`` overrides the directory
"""

__all__ = [
    "IssueRecord",
    "IssueLogBuffer",
    "LOG_DIR_ENV_VAR",
]

LOGS_DIR = Path("./logs")
LOG_DIR_ENV_VAR = "RESULTEASE_LOG_DIR"
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


def _logs_dir() -> Path:
    env_dir = os.environ.get(LOG_DIR_ENV_VAR)
    return Path(env_dir) if env_dir else LOGS_DIR


class IssueLogBuffer:
    """In-memory buffer of issue records; ``flush()`` appends them as JSON Lines.

    The file path is fixed on first access. Single-threaded use only.
    """
    def __init__(self, directory: Path | None = None) -> None:
        self._records: list[IssueRecord] = []
        self._directory = directory
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            directory = self._directory or _logs_dir()
            directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = directory / f"issues-{stamp}.log"
        return self._file_path

    def append(self, record: IssueRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[IssueRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file written, or None when there was nothing to write."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
