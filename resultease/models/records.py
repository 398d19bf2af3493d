from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""CandidateRecord: one source row after accepted mappings were applied."""

__all__ = [
    "CandidateRecord",
    "TransformResult",
]


@dataclass(frozen=True)
class CandidateRecord:
    """Typed fields plus a marks map keyed by normalized subject name.

    ``row_number`` is the 1-based row in the source sheet.
    """
    row_number: int
    fields: dict[str, Any]
    marks: dict[str, Any] = field(default_factory=dict)
    raw_values: dict[str, Any] | None = None

    def get(self, field_name: str, default: Any = None) -> Any:
        if field_name == "marks":
            return self.marks
        return self.fields.get(field_name, default)

    @property
    def student_name(self) -> Any:
        return self.fields.get("student_name")

    @property
    def roll_number(self) -> Any:
        return self.fields.get("roll_number")


@dataclass(frozen=True)
class TransformResult:
    records: list[CandidateRecord]
    errors: list[str] = field(default_factory=list)  # per-row hard errors; the row is dropped
    failed_rows: list[int] = field(default_factory=list)  # source row numbers behind ``errors``
    warnings: list[str] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)  # rows dropped for lacking required values

    @property
    def success(self) -> bool:
        return not self.errors
