from __future__ import annotations

import logging
import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from ..excel.column_mapper import REQUIRED_FIELDS
from ..models.mapping import ColumnMapping
from ..models.records import CandidateRecord
from ..models.tabular import TabularData
from ..models.validation import (
    DuplicateGroup,
    QualityReport,
    RecordValidation,
    RuleOutcome,
    RuleViolation,
    Severity,
    StructureReport,
    ValidationReport,
    ValidationRule,
    ValidationSummary,
)

"""Validation engine.

Every rule in the table runs against every candidate record; a rule that
fails adds a violation routed by its severity, and a record is valid iff it
has no error-severity violations. A batch pass then flags duplicate roll
numbers (global error) and duplicate names (global warning) and scores data
quality. Nothing here stops early: one pass reports every detected issue.
"""

__all__ = [
    "DEFAULT_RULES",
    "validate_records",
    "find_duplicates",
    "assess_quality",
    "validate_structure",
]

logger = logging.getLogger(__name__)

NAME_MIN, NAME_MAX = 2, 100
ROLL_MIN, ROLL_MAX = 1, 20
LOW_AVERAGE, HIGH_AVERAGE = 10.0, 95.0
_NAME_PUNCT = frozenset(".'-’")
_AUTO_HEADER_RE = re.compile(r"^Column_\d+$")


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _as_mark(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# Rule predicates: (value, record, all records) -> RuleOutcome

def _required_name(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    return RuleOutcome.ok() if _present(value) else RuleOutcome.fail("Student name is required")


def _required_roll(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    return RuleOutcome.ok() if _present(value) else RuleOutcome.fail("Roll number is required")


def _name_format(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    if not _present(value):
        return RuleOutcome.ok()
    name = str(value).strip()
    if not all(ch.isalpha() or ch.isspace() or ch in _NAME_PUNCT for ch in name):
        return RuleOutcome.fail("Name contains invalid characters")
    if len(name) < NAME_MIN:
        return RuleOutcome.fail(f"Name must be at least {NAME_MIN} characters long")
    if len(name) > NAME_MAX:
        return RuleOutcome.fail(f"Name cannot exceed {NAME_MAX} characters")
    return RuleOutcome.ok()


def _roll_format(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    if not _present(value):
        return RuleOutcome.ok()
    if not ROLL_MIN <= len(str(value).strip()) <= ROLL_MAX:
        return RuleOutcome.fail(f"Roll number must be between {ROLL_MIN}-{ROLL_MAX} characters")
    return RuleOutcome.ok()


def _marks_range(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    if not value:
        return RuleOutcome.fail("No marks data found")
    invalid = []
    for subject, raw in value.items():
        mark = _as_mark(raw)
        if mark is None or not 0 <= mark <= 100:
            invalid.append(f"{subject}: {raw}")
    if invalid:
        return RuleOutcome.fail(f"Invalid marks (must be 0-100): {', '.join(invalid)}")
    return RuleOutcome.ok()


def _marks_consistency(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    if not value:
        return RuleOutcome.ok()
    positive = [m for m in (_as_mark(v) for v in value.values()) if m is not None and m > 0]
    if not positive:
        return RuleOutcome.fail("Student has no valid marks in any subject")
    average = sum(positive) / len(positive)
    if average < LOW_AVERAGE:
        return RuleOutcome.fail("Very low average marks - please verify data")
    if average > HIGH_AVERAGE:
        return RuleOutcome.fail("Very high average marks - please verify data")
    return RuleOutcome.ok()


def _name_consistency(value: Any, record: CandidateRecord, records: Sequence[CandidateRecord]) -> RuleOutcome:
    if not _present(value):
        return RuleOutcome.ok()
    name = str(value).strip()
    words = name.split()
    if len(words) == 1 and len(words[0]) < 3:
        return RuleOutcome.fail("Very short name - please verify")
    if any(ch.isdigit() for ch in name):
        return RuleOutcome.fail("Name contains numbers - please verify")
    if name.isupper() and len(name) > 10:
        return RuleOutcome.fail("Name is in all caps - consider proper case")
    if name.islower():
        return RuleOutcome.fail("Name is in all lowercase - consider proper case")
    return RuleOutcome.ok()


DEFAULT_RULES: tuple[ValidationRule, ...] = (
    ValidationRule("required_student_name", "student_name", Severity.ERROR, _required_name,
                   "Student name must not be empty"),
    ValidationRule("required_roll_number", "roll_number", Severity.ERROR, _required_roll,
                   "Roll number must not be empty"),
    ValidationRule("name_format", "student_name", Severity.ERROR, _name_format,
                   "Student name format validation"),
    ValidationRule("roll_number_format", "roll_number", Severity.ERROR, _roll_format,
                   "Roll number format validation"),
    ValidationRule("marks_range", "marks", Severity.ERROR, _marks_range,
                   "Marks must be between 0 and 100"),
    ValidationRule("marks_consistency", "marks", Severity.WARNING, _marks_consistency,
                   "Check marks consistency and reasonableness"),
    ValidationRule("name_consistency", "student_name", Severity.WARNING, _name_consistency,
                   "Check name formatting and consistency"),
)


def _validate_record(
    index: int,
    record: CandidateRecord,
    rules: Sequence[ValidationRule],
    records: Sequence[CandidateRecord],
) -> RecordValidation:
    errors: list[RuleViolation] = []
    warnings: list[RuleViolation] = []
    for rule in rules:
        try:
            outcome = rule.predicate(record.get(rule.field), record, records)
        except Exception as e:  # a faulty custom rule marks the record, not the batch
            errors.append(RuleViolation(rule.field, rule.name, f"Validation error: {e}"))
            continue
        if outcome.valid:
            continue
        violation = RuleViolation(rule.field, rule.name, outcome.message or rule.description or rule.name)
        (errors if rule.severity is Severity.ERROR else warnings).append(violation)
    return RecordValidation(index=index, row_number=record.row_number, errors=errors, warnings=warnings)


def find_duplicates(records: Sequence[CandidateRecord], field_name: str) -> list[DuplicateGroup]:
    """Groups of record indexes sharing a value (trimmed, case-insensitive), first-seen order."""
    seen: dict[str, list[int]] = {}
    for index, record in enumerate(records):
        value = record.get(field_name)
        if not _present(value):
            continue
        seen.setdefault(str(value).strip().lower(), []).append(index)
    return [DuplicateGroup(value=k, indexes=v) for k, v in seen.items() if len(v) > 1]


def assess_quality(records: Sequence[CandidateRecord], results: Sequence[RecordValidation]) -> QualityReport:
    """Completeness, consistency and accuracy on a 0-100 scale plus insights."""
    total = len(records)
    if total == 0:
        return QualityReport(0.0, 0.0, 0.0, 0.0, ["No records available for quality analysis"])

    filled = sum(
        _present(r.student_name) + _present(r.roll_number) + bool(r.marks)
        for r in records
    )
    completeness = filled / (total * 3) * 100
    consistency = sum(1 for r in results if not r.warnings) / total * 100
    accuracy = sum(1 for r in results if not r.errors) / total * 100
    overall = (completeness + consistency + accuracy) / 3

    insights: list[str] = []
    if completeness < 80:
        insights.append("Data has missing values in required fields")
    if consistency < 80:
        insights.append("Data formatting is inconsistent across rows")
    if accuracy < 90:
        insights.append("Data contains validation errors that need attention")
    if overall >= 90:
        insights.append("Data quality is excellent")
    elif overall >= 70:
        insights.append("Data quality is good with minor issues")
    else:
        insights.append("Data quality needs significant improvement")

    return QualityReport(
        completeness=completeness,
        consistency=consistency,
        accuracy=accuracy,
        overall=overall,
        insights=insights,
    )


def validate_records(
    records: Sequence[CandidateRecord],
    mappings: Sequence[ColumnMapping] | None = None,
    custom_rules: Iterable[ValidationRule] = (),
    *,
    rules: Sequence[ValidationRule] = DEFAULT_RULES,
) -> ValidationReport:
    """Run the rule table over ``records`` and the batch-level checks.

    Parameters
    ----------
    records: candidate records from the transformer
    mappings: accepted mappings; when given, unmapped required fields become global errors
    custom_rules: appended after ``rules``
    rules: base rule table
    """
    all_rules = [*rules, *custom_rules]
    per_record = [_validate_record(i, r, all_rules, records) for i, r in enumerate(records)]

    global_errors: list[str] = []
    global_warnings: list[str] = []
    if mappings is not None:
        targets = {m.target_field for m in mappings}
        for required in REQUIRED_FIELDS:
            if required not in targets:
                global_errors.append(f"Missing required field mapping: {required}")

    duplicate_rolls = find_duplicates(records, "roll_number")
    duplicate_names = find_duplicates(records, "student_name")
    if duplicate_rolls:
        global_errors.append(f"Found duplicate roll numbers: {', '.join(d.value for d in duplicate_rolls)}")
    if duplicate_names:
        global_warnings.append(f"Found duplicate names: {', '.join(d.value for d in duplicate_names)}")

    valid = sum(1 for r in per_record if r.is_valid)
    summary = ValidationSummary(
        total=len(records),
        valid=valid,
        invalid=len(records) - valid,
        warned=sum(1 for r in per_record if r.warnings),
    )
    report = ValidationReport(
        summary=summary,
        per_record=per_record,
        global_errors=global_errors,
        global_warnings=global_warnings,
        duplicate_roll_numbers=duplicate_rolls,
        duplicate_names=duplicate_names,
        quality=assess_quality(records, per_record),
    )
    logger.debug(
        f"validation: total={summary.total} invalid={summary.invalid} warned={summary.warned} "
        f"global_errors={len(global_errors)}"
    )
    return report


_NAME_HINTS = (re.compile(r"name", re.I), re.compile(r"student", re.I))
_ROLL_HINTS = (re.compile(r"roll", re.I), re.compile(r"\bid\b", re.I), re.compile(r"number", re.I),
               re.compile(r"\bno\b", re.I), re.compile(r"admission", re.I))


def validate_structure(table: TabularData) -> StructureReport:
    """Pre-mapping sanity check of a read table."""
    errors: list[str] = []
    warnings: list[str] = []
    recommendations: list[str] = []
    headers, rows = table.headers, table.rows

    if not headers:
        errors.append("No headers found in the file")
    if not rows:
        errors.append("No data rows found in the file")
    if len(headers) < 3:
        warnings.append(
            "Very few columns detected - ensure file contains student name, roll number, and at least one subject"
        )
    if len(headers) > 50:
        warnings.append("Large number of columns detected - this may slow down processing")
    if len(rows) > 1000:
        warnings.append("Large dataset detected - processing may take longer")

    auto_named = [h for h in headers if _AUTO_HEADER_RE.match(h)]
    if auto_named:
        warnings.append(f"{len(auto_named)} empty column headers found")
        recommendations.append("Consider removing empty columns or providing proper headers")

    duplicates = [h for h, n in Counter(headers).items() if n > 1]
    if duplicates:
        errors.append(f"Duplicate column headers found: {', '.join(duplicates)}")
        recommendations.append("Ensure all column headers are unique")

    if headers:
        sparse = sum(1 for r in rows if sum(1 for h in headers if not _present(r.get(h))) > len(headers) * 0.5)
        if sparse:
            warnings.append(f"{sparse} rows have inconsistent data structure")

    if len(rows) < 5:
        recommendations.append("Consider adding more sample data for better analysis")
    if not any(p.search(h) for h in headers for p in _NAME_HINTS):
        recommendations.append("Ensure file contains a student name column")
    if not any(p.search(h) for h in headers for p in _ROLL_HINTS):
        recommendations.append("Ensure file contains a roll number column")

    return StructureReport(errors=errors, warnings=warnings, recommendations=recommendations)
