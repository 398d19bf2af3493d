from __future__ import annotations

from pathlib import Path

import pytest

from resultease.models.config_models import AppConfig, MappingConfig, ReaderConfig
from resultease.models.outcome import Failure, FailureKind, Success
from resultease.services.pipeline import PipelineError, analyze_file, collect_issues, ingest
from tests.helpers import CLASS_ROWS, make_excel


def _csv(rows) -> bytes:
    return ("\n".join(",".join(str(c) for c in row) for row in rows) + "\n").encode("utf-8")


def test_ingest_success_builds_ranked_result_set(tmp_path):
    buffer = make_excel(tmp_path / "term1.xlsx", {"Results": CLASS_ROWS}).read_bytes()
    outcome = ingest(buffer, "term1.xlsx", result_id="r-1")
    assert isinstance(outcome, Success)
    assert outcome.ok
    rs = outcome.data.result_set
    assert rs.id == "r-1"
    assert rs.title == "term1"
    assert rs.subject_names == ["Mathematics", "Science", "English"]
    assert rs.is_ranked
    assert [r.student.name for r in rs.students_by_rank()] == [
        "Alice Top", "Diana High", "Bob Middle", "Charlie Low",
    ]
    assert rs.get_student_result("001").mark_value("Science") == 92.0
    assert outcome.data.validation.is_valid
    assert outcome.warnings == []


def test_ingest_csv_with_absent_marks():
    rows = [
        ["Name", "Roll No", "Maths", "Science"],
        ["Alice Top", "1", "absent", 90],
        ["Bob Lee", "2", 70, 60],
        ["Cara Diaz", "3", 55, 65],
        ["Dev Shah", "4", 81, 77],
        ["Eli Moss", "5", 64, 58],
    ]
    outcome = ingest(_csv(rows), "marks.csv", title="Mid Term")
    assert isinstance(outcome, Success)
    rs = outcome.data.result_set
    assert rs.title == "Mid Term"
    assert rs.subject_names == ["Maths", "Science"]
    assert rs.get_student_result("1").mark_value("Maths") == 0.0
    assert len(rs.id) == 32


def test_structural_failure():
    outcome = ingest(b"", "empty.csv")
    assert isinstance(outcome, Failure)
    assert not outcome.ok
    assert outcome.kind is FailureKind.STRUCTURAL


def test_size_guard():
    cfg = AppConfig(reader=ReaderConfig(max_bytes=10))
    outcome = ingest(_csv(CLASS_ROWS), "marks.csv", config=cfg)
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.STRUCTURAL
    assert "exceeds the limit of 10 bytes" in outcome.message


def test_unsupported_extension():
    outcome = ingest(b"whatever", "marks.pdf")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.STRUCTURAL


def test_missing_required_fields():
    rows = [["Foo", "Maths"], ["x", 50]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.MAPPING
    assert outcome.message == "Missing required fields: student_name, roll_number"
    assert outcome.context.missing_required_fields == ["student_name", "roll_number"]


def test_no_subject_columns():
    rows = [["Name", "Roll"], ["Alice", "1"]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.MAPPING
    assert outcome.message == "No subject columns detected"


def test_no_usable_rows():
    rows = [["Name", "Roll", "Maths"], ["", "", 50], ["", "", 60]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.TRANSFORM
    issues = collect_issues("marks.csv", outcome)
    assert [(i.row, i.rule, i.severity) for i in issues] == [(2, "row_skipped", "warning"), (3, "row_skipped", "warning")]


def test_validation_gate_rejects_duplicate_roll_numbers():
    rows = [["Name", "Roll", "Maths"], ["Alice Top", "001", 90], ["Bob Lee", "001", 70]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.VALIDATION
    assert "Found duplicate roll numbers: 001" in outcome.details
    issues = collect_issues("marks.csv", outcome)
    assert [(i.row, i.rule) for i in issues] == [(-1, "batch_validation")]


def test_validation_gate_reports_row_errors():
    rows = [["Name", "Roll", "Maths"], ["Alice Top", "1", 90], ["B4d N4me", "2", 70]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.VALIDATION
    assert "Row 3: student_name: Name contains invalid characters" in outcome.details
    rules = {(i.row, i.rule, i.severity) for i in collect_issues("marks.csv", outcome)}
    assert (3, "name_format", "error") in rules
    assert (3, "name_consistency", "warning") in rules


def test_mapping_overrides_from_config():
    rows = [["Student Name", "Adm", "Maths"], ["Alice Top", "A-1", 90], ["Bob Lee", "A-2", 70]]
    cfg = AppConfig(mapping=MappingConfig(overrides={"Adm": "roll_number", "Absent Header": None}))
    outcome = ingest(_csv(rows), "marks.csv", config=cfg)
    assert isinstance(outcome, Success)
    assert outcome.data.result_set.get_student_result("a-1") is not None


def test_success_collects_warning_issues():
    rows = [["Name", "Roll", "Maths"], ["Alice Top", "1", 90], ["bob lee", "2", 70]]
    outcome = ingest(_csv(rows), "marks.csv")
    assert isinstance(outcome, Success)
    issues = collect_issues("marks.csv", outcome)
    assert [(i.row, i.rule, i.severity, i.sheet) for i in issues] == [(3, "name_consistency", "warning", "CSV")]


def test_structural_failure_issue_is_batch_level():
    issues = collect_issues("empty.csv", ingest(b"", "empty.csv"))
    assert [(i.row, i.rule) for i in issues] == [(-1, "structural")]


def test_analyze_file(tmp_path: Path):
    path = make_excel(tmp_path / "term1.xlsx", {"Results": CLASS_ROWS})
    assert isinstance(analyze_file(path), Success)
    with pytest.raises(PipelineError, match="cannot read"):
        analyze_file(tmp_path / "missing.xlsx")
