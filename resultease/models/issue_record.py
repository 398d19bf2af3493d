from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""IssueRecord model for the JSON Lines issue log.

Every row-, field- or batch-level problem found while ingesting a file is
written as one IssueRecord. ``row=-1`` marks a batch-level issue (duplicate
roll numbers, structural failures) that has no single source row.
"""

__all__ = [
    "IssueRecord",
]


@dataclass(frozen=True)
class IssueRecord:
    """Structured issue record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: source file name
        sheet: sheet name within the file
        row: 1-based source row, -1 when the issue is batch-level
        field: target field the issue concerns ("" when none)
        rule: rule or stage identifier in lower_snake_case
        severity: "error" or "warning"
        message: human-readable description
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    field: str
    rule: str
    severity: str
    message: str

    @staticmethod
    def create(
        file: str,
        sheet: str,
        row: int,
        rule: str,
        message: str,
        *,
        field: str = "",
        severity: str = "error",
    ) -> IssueRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return IssueRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            field=field,
            rule=rule,
            severity=severity,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
