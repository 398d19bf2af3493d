from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Column mapping models.

A ColumnMapping binds one source header to one target field. Non-subject
targets are claimed at most once; subject targets (``subject_<name>``) are
unbounded.
"""

__all__ = [
    "FieldType",
    "ColumnMapping",
    "MappingSuggestion",
    "MappingResult",
    "MappingCheck",
    "SUBJECT_PREFIX",
]

SUBJECT_PREFIX = "subject_"


class FieldType(Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"


@dataclass(frozen=True)
class ColumnMapping:
    source_header: str
    target_field: str
    required: bool = False
    data_type: FieldType = FieldType.STRING
    transformer: Callable[[Any], Any] | None = field(default=None, compare=False, repr=False)

    @property
    def is_subject(self) -> bool:
        return self.target_field.startswith(SUBJECT_PREFIX)

    @property
    def subject_key(self) -> str | None:
        """Normalized subject name for subject mappings, else None."""
        if not self.is_subject:
            return None
        return self.target_field[len(SUBJECT_PREFIX):]

    def apply(self, raw: Any) -> Any:
        return self.transformer(raw) if self.transformer is not None else raw

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_header": self.source_header,
            "target_field": self.target_field,
            "required": self.required,
            "type": self.data_type.value,
        }


@dataclass(frozen=True)
class MappingSuggestion:
    """A non-binding, low-confidence mapping proposal."""
    source_header: str
    suggested_field: str
    confidence: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_header": self.source_header,
            "suggested_field": self.suggested_field,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class MappingResult:
    mappings: list[ColumnMapping]
    confidence: float  # required fields auto-mapped / required fields
    suggestions: list[MappingSuggestion] = field(default_factory=list)
    unmapped_headers: list[str] = field(default_factory=list)
    missing_required_fields: list[str] = field(default_factory=list)

    @property
    def subject_mappings(self) -> list[ColumnMapping]:
        return [m for m in self.mappings if m.is_subject]

    def to_dict(self) -> dict[str, Any]:
        return {
            "mappings": [m.to_dict() for m in self.mappings],
            "confidence": self.confidence,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "unmapped_headers": list(self.unmapped_headers),
            "missing_required_fields": list(self.missing_required_fields),
        }


@dataclass(frozen=True)
class MappingCheck:
    """Outcome of checking a caller-edited mapping list against the headers."""
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    total_columns: int
    mapped_columns: int
    required_fields_mapped: int
    subject_column_count: int
