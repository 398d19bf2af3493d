from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..domain.result_set import ResultSet
from ..excel.column_mapper import apply_overrides, auto_map_columns
from ..excel.reader import FileTooLargeError, StructuralError, read_table
from ..excel.transformer import transform_table
from ..models.config_models import AppConfig
from ..models.issue_record import IssueRecord
from ..models.mapping import MappingResult
from ..models.outcome import Failure, FailureKind, Outcome, Success
from ..models.records import CandidateRecord, TransformResult
from ..models.tabular import TabularData
from ..models.validation import ValidationReport, ValidationRule
from .validation import validate_records

"""Pipeline orchestrator.

Stages, in order:
1. Size guard, then read one sheet into TabularData (structural failures abort)
2. Heuristic column mapping plus configured overrides (missing required
   fields or no subject column abort)
3. Row transformation (bad rows are dropped; no surviving row aborts)
4. Validation gate: runs to completion over every record; any invalid record
   or global error rejects the batch before any domain object is built
5. ResultSet construction and ranking

Every stage outcome is returned as Success or Failure; only a domain
invariant violation (a broken contract past the gate) propagates as an
exception.
"""

__all__ = [
    "PipelineError",
    "PipelineResult",
    "check_size",
    "ingest",
    "analyze_file",
    "collect_issues",
]

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when an input cannot be handed to the pipeline at all."""


@dataclass(frozen=True)
class PipelineResult:
    result_set: ResultSet
    table: TabularData
    mapping: MappingResult
    transform: TransformResult
    validation: ValidationReport


def check_size(buffer: bytes, max_bytes: int) -> None:
    if len(buffer) > max_bytes:
        raise FileTooLargeError(f"File size {len(buffer)} bytes exceeds the limit of {max_bytes} bytes")


def _student_payload(record: CandidateRecord, mapping: MappingResult) -> dict[str, Any]:
    return {
        "name": record.student_name,
        "roll_number": record.roll_number,
        "class": record.get("class"),
        "section": record.get("section"),
        # subject display name = source header
        "marks": {m.source_header: record.marks.get(m.subject_key) for m in mapping.subject_mappings},
    }


def _validation_details(report: ValidationReport) -> list[str]:
    details = list(report.global_errors)
    for rv in report.per_record:
        for e in rv.errors:
            details.append(f"Row {rv.row_number}: {e.field}: {e.message}")
    return details


def ingest(
    buffer: bytes,
    file_name: str,
    *,
    file_type: str | None = None,
    config: AppConfig | None = None,
    title: str | None = None,
    result_id: str | None = None,
    custom_rules: Iterable[ValidationRule] = (),
) -> Outcome[PipelineResult]:
    """Run bytes through every stage up to a ranked ResultSet.

    Parameters
    ----------
    buffer: raw file content
    file_name: source name, used for type detection and labels
    file_type: "csv" / "xlsx" / "xls" or a mime type; detected from the name when None
    config: reader guards, mapping overrides (defaults when None)
    title: ResultSet title; defaults to the file stem
    result_id: ResultSet id; a random hex id when None
    custom_rules: validation rules appended to the default table
    """
    cfg = config or AppConfig()

    try:
        check_size(buffer, cfg.reader.max_bytes)
        table = read_table(buffer, file_name, file_type, cfg.reader.read_options())
    except StructuralError as e:
        logger.warning(f"{file_name}: {e}")
        return Failure(FailureKind.STRUCTURAL, str(e))
    logger.info(f"{file_name}: read sheet '{table.metadata.sheet_name}' rows={len(table.rows)} cols={len(table.headers)}")

    mapping = auto_map_columns(table.headers, table.rows)
    overrides = {h: t for h, t in cfg.mapping.overrides.items() if h in table.headers}
    if overrides:
        mapping = apply_overrides(mapping, overrides)
    ignored = sorted(set(cfg.mapping.overrides) - set(overrides))
    if ignored:
        logger.debug(f"{file_name}: overrides for absent headers ignored: {ignored}")

    if mapping.missing_required_fields:
        details = [
            f"{s.source_header} -> {s.suggested_field} ({s.confidence:.2f}): {s.reason}"
            for s in mapping.suggestions
        ]
        message = f"Missing required fields: {', '.join(mapping.missing_required_fields)}"
        logger.warning(f"{file_name}: {message}")
        return Failure(FailureKind.MAPPING, message, details, context=mapping)
    if not mapping.subject_mappings:
        message = "No subject columns detected"
        logger.warning(f"{file_name}: {message}")
        return Failure(FailureKind.MAPPING, message, [f"Unmapped columns: {', '.join(mapping.unmapped_headers)}"],
                       context=mapping)
    logger.debug(
        f"{file_name}: mapping confidence={mapping.confidence} "
        f"subjects={[m.source_header for m in mapping.subject_mappings]}"
    )

    transform = transform_table(table, mapping.mappings)
    for w in transform.warnings:
        logger.warning(f"{file_name}: {w}")
    for e in transform.errors:
        logger.warning(f"{file_name}: {e}")
    if not transform.records:
        message = "No usable rows after transformation"
        logger.warning(f"{file_name}: {message}")
        return Failure(FailureKind.TRANSFORM, message, [*transform.errors, *transform.warnings], context=transform)

    report = validate_records(transform.records, mapping.mappings, custom_rules)
    if not report.is_valid:
        message = (
            f"Validation failed: {report.summary.invalid} of {report.summary.total} records invalid, "
            f"{len(report.global_errors)} batch errors"
        )
        logger.warning(f"{file_name}: {message}")
        return Failure(FailureKind.VALIDATION, message, _validation_details(report), context=report)

    subjects: Sequence[str] = [m.source_header for m in mapping.subject_mappings]
    result_set = ResultSet.from_raw_data(
        result_id or uuid.uuid4().hex,
        title or Path(file_name).stem,
        subjects,
        [_student_payload(r, mapping) for r in transform.records],
    )
    result_set.calculate_ranks()
    logger.info(
        f"{file_name}: students={result_set.student_count} subjects={len(subjects)} "
        f"quality={report.quality.overall:.2f}"
    )

    warnings = [*table.warnings, *transform.warnings, *report.global_warnings]
    return Success(PipelineResult(result_set, table, mapping, transform, report), warnings)


def analyze_file(path: Path, config: AppConfig | None = None, **kwargs: Any) -> Outcome[PipelineResult]:
    """Read ``path`` and run ``ingest`` on its bytes."""
    try:
        buffer = path.read_bytes()
    except OSError as e:
        raise PipelineError(f"cannot read {path}: {e}") from e
    return ingest(buffer, path.name, config=config, **kwargs)


def collect_issues(file_name: str, outcome: Outcome[PipelineResult]) -> list[IssueRecord]:
    """Issue-log records for one pipeline run (``row=-1`` marks batch-level issues)."""
    if isinstance(outcome, Success):
        result: PipelineResult = outcome.data
        sheet = result.table.metadata.sheet_name
        issues = _transform_issues(file_name, sheet, result.transform)
        issues.extend(_validation_issues(file_name, sheet, result.validation))
        return issues

    sheet = ""
    issues = []
    if isinstance(outcome.context, TransformResult):
        issues.extend(_transform_issues(file_name, sheet, outcome.context))
    elif isinstance(outcome.context, ValidationReport):
        issues.extend(_validation_issues(file_name, sheet, outcome.context))
    else:
        issues.append(IssueRecord.create(file_name, sheet, -1, outcome.kind.value, outcome.message))
    return issues


def _transform_issues(file_name: str, sheet: str, transform: TransformResult) -> list[IssueRecord]:
    issues = [
        IssueRecord.create(file_name, sheet, row, "row_transform", message)
        for row, message in zip(transform.failed_rows, transform.errors, strict=True)
    ]
    issues.extend(
        IssueRecord.create(file_name, sheet, row, "row_skipped", message, severity="warning")
        for row, message in zip(transform.skipped_rows, transform.warnings, strict=True)
    )
    return issues


def _validation_issues(file_name: str, sheet: str, report: ValidationReport) -> list[IssueRecord]:
    issues: list[IssueRecord] = []
    for rv in report.per_record:
        for e in rv.errors:
            issues.append(IssueRecord.create(file_name, sheet, rv.row_number, e.rule, e.message, field=e.field))
        for w in rv.warnings:
            issues.append(
                IssueRecord.create(file_name, sheet, rv.row_number, w.rule, w.message, field=w.field, severity="warning")
            )
    issues.extend(IssueRecord.create(file_name, sheet, -1, "batch_validation", m) for m in report.global_errors)
    issues.extend(
        IssueRecord.create(file_name, sheet, -1, "batch_validation", m, severity="warning")
        for m in report.global_warnings
    )
    return issues
