from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.mapping import ColumnMapping
from ..models.records import CandidateRecord, TransformResult
from ..models.tabular import TabularData

"""Row transformer: apply accepted column mappings to raw rows.

Suggestions are never applied here; callers accept them first. Non-subject
fields land in ``CandidateRecord.fields``; subject fields land in
``CandidateRecord.marks`` keyed by the normalized subject name.

A row where no required field carries a truthy value is dropped with a
warning. A transformer that raises drops only its own row and records a
hard error; the rest of the batch continues.
"""

__all__ = ["transform_rows", "transform_table"]

logger = logging.getLogger(__name__)


class _RowTransformError(Exception):
    def __init__(self, header: str, cause: Exception):
        super().__init__(f"failed to transform column '{header}': {cause}")
        self.header = header


def _transform_row(row: Mapping[str, Any], mappings: Sequence[ColumnMapping]) -> tuple[dict[str, Any], dict[str, Any]]:
    fields: dict[str, Any] = {}
    marks: dict[str, Any] = {}
    for m in mappings:
        raw = row.get(m.source_header)
        try:
            value = m.apply(raw)
        except Exception as e:  # transformers are caller-supplied callables
            raise _RowTransformError(m.source_header, e) from e
        if m.is_subject:
            marks[m.subject_key] = value
        else:
            fields[m.target_field] = value
    return fields, marks


def transform_rows(
    rows: Sequence[Mapping[str, Any]],
    mappings: Sequence[ColumnMapping],
    row_numbers: Sequence[int] | None = None,
) -> TransformResult:
    """Apply ``mappings`` to every row.

    Parameters
    ----------
    rows: header -> raw value mappings
    mappings: accepted mappings only
    row_numbers: source row number per row; defaults to index + 2 (header on row 1)
    """
    if row_numbers is None:
        row_numbers = [i + 2 for i in range(len(rows))]
    required = [m.target_field for m in mappings if m.required]

    records: list[CandidateRecord] = []
    errors: list[str] = []
    failed_rows: list[int] = []
    warnings: list[str] = []
    skipped_rows: list[int] = []
    for row, row_number in zip(rows, row_numbers, strict=True):
        try:
            fields, marks = _transform_row(row, mappings)
        except _RowTransformError as e:
            errors.append(f"Row {row_number}: {e}")
            failed_rows.append(row_number)
            continue
        if required and not any(fields.get(f) for f in required):
            warnings.append(f"Row {row_number}: skipped, no required field has a value")
            skipped_rows.append(row_number)
            continue
        records.append(CandidateRecord(row_number=row_number, fields=fields, marks=marks, raw_values=dict(row)))

    logger.debug(f"transformer: records={len(records)} errors={len(errors)} skipped={len(warnings)}")
    return TransformResult(
        records=records,
        errors=errors,
        failed_rows=failed_rows,
        warnings=warnings,
        skipped_rows=skipped_rows,
    )


def transform_table(table: TabularData, mappings: Sequence[ColumnMapping]) -> TransformResult:
    return transform_rows(table.rows, mappings, table.row_numbers or None)
