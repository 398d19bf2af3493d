from __future__ import annotations

from resultease.excel.column_mapper import auto_map_columns
from resultease.models.records import CandidateRecord
from resultease.services.report import build_analysis_report
from resultease.services.validation import validate_records

"""Serialized shapes consumed by callers of the JSON report."""


def test_mapping_result_shape():
    result = auto_map_columns(["Student Name", "Roll No", "Maths"], [{"Maths": 80}]).to_dict()
    assert set(result) == {"mappings", "confidence", "suggestions", "unmapped_headers", "missing_required_fields"}
    assert set(result["mappings"][0]) == {"source_header", "target_field", "required", "type"}


def test_validation_report_shape():
    records = [CandidateRecord(2, {"student_name": "Alice Top", "roll_number": "1"}, {"maths": 80.0})]
    report = validate_records(records).to_dict()
    assert set(report) == {
        "is_valid", "summary", "per_record", "global_errors", "global_warnings", "duplicates", "quality",
    }
    assert set(report["summary"]) == {"total", "valid", "invalid", "warned"}
    assert set(report["per_record"][0]) == {"index", "row_number", "is_valid", "errors", "warnings"}
    assert set(report["duplicates"]) == {"roll_numbers", "names"}
    assert set(report["quality"]) == {"completeness", "consistency", "accuracy", "overall", "insights"}


def test_analysis_report_shape(class_result):
    report = build_analysis_report(class_result).to_dict()
    assert set(report) == {
        "result_id",
        "title",
        "summary",
        "subject_analysis",
        "student_rankings",
        "performance_insights",
        "high_performers",
        "struggling_students",
        "grade_distribution",
        "marks_distribution",
        "rank_distribution",
    }
    assert set(report["performance_insights"]) == {
        "class_performance", "key_insights", "recommendations", "strengths", "concerns", "statistics",
    }
    assert list(report["grade_distribution"]) == ["A+", "A", "B", "C", "D", "E", "F"]


def test_export_shape(class_result):
    class_result.calculate_ranks()
    export = class_result.to_export()
    student = export["student_results"][0]
    assert set(student["student"]) == {"name", "roll_number", "class", "section"}
    assert student["marks_by_subject"] == {"Mathematics": 95.0, "Science": 92.0, "English": 88.0}
    assert student["rank"] == 1
