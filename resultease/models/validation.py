from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..domain.value_objects import round2

if TYPE_CHECKING:
    from .records import CandidateRecord

"""Validation models: rules, per-record results and the batch report."""

__all__ = [
    "Severity",
    "RuleOutcome",
    "ValidationRule",
    "RuleViolation",
    "RecordValidation",
    "DuplicateGroup",
    "ValidationSummary",
    "QualityReport",
    "ValidationReport",
    "StructureReport",
]


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class RuleOutcome:
    valid: bool
    message: str | None = None

    @classmethod
    def ok(cls) -> RuleOutcome:
        return cls(True)

    @classmethod
    def fail(cls, message: str) -> RuleOutcome:
        return cls(False, message)


Predicate = Callable[[Any, "CandidateRecord", Sequence["CandidateRecord"]], RuleOutcome]


@dataclass(frozen=True)
class ValidationRule:
    """A named, pure predicate over (value, record, all records)."""
    name: str
    field: str
    severity: Severity
    predicate: Predicate = field(compare=False, repr=False)
    description: str = ""


@dataclass(frozen=True)
class RuleViolation:
    field: str
    rule: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "rule": self.rule, "message": self.message}


@dataclass(frozen=True)
class RecordValidation:
    index: int  # position in the candidate record list
    row_number: int  # source row
    errors: list[RuleViolation]
    warnings: list[RuleViolation]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "row_number": self.row_number,
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class DuplicateGroup:
    value: str  # normalized (trimmed, lower-cased) value
    indexes: list[int]

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "indexes": list(self.indexes)}


@dataclass(frozen=True)
class ValidationSummary:
    total: int
    valid: int
    invalid: int
    warned: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "valid": self.valid, "invalid": self.invalid, "warned": self.warned}


@dataclass(frozen=True)
class QualityReport:
    """Data-quality scores on a 0-100 scale."""
    completeness: float
    consistency: float
    accuracy: float
    overall: float
    insights: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "completeness": round2(self.completeness),
            "consistency": round2(self.consistency),
            "accuracy": round2(self.accuracy),
            "overall": round2(self.overall),
            "insights": list(self.insights),
        }


@dataclass(frozen=True)
class ValidationReport:
    summary: ValidationSummary
    per_record: list[RecordValidation]
    global_errors: list[str]
    global_warnings: list[str]
    duplicate_roll_numbers: list[DuplicateGroup]
    duplicate_names: list[DuplicateGroup]
    quality: QualityReport

    @property
    def is_valid(self) -> bool:
        return not self.global_errors and self.summary.invalid == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "summary": self.summary.to_dict(),
            "per_record": [r.to_dict() for r in self.per_record],
            "global_errors": list(self.global_errors),
            "global_warnings": list(self.global_warnings),
            "duplicates": {
                "roll_numbers": [d.to_dict() for d in self.duplicate_roll_numbers],
                "names": [d.to_dict() for d in self.duplicate_names],
            },
            "quality": self.quality.to_dict(),
        }


@dataclass(frozen=True)
class StructureReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
