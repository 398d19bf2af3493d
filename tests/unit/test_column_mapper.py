from __future__ import annotations

import pytest

from resultease.excel.column_mapper import (
    FIELD_LABELS,
    accept_suggestion,
    apply_overrides,
    auto_map_columns,
    build_mapping,
    levenshtein_similarity,
    marks_transformer,
    normalize_header,
    normalize_subject_name,
    validate_mappings,
)
from resultease.models.mapping import FieldType

HEADERS = ["Student Name", "Roll No", "Mathematics", "Science", "English"]
SAMPLE = [
    {"Student Name": "Alice", "Roll No": "001", "Mathematics": 95, "Science": 92, "English": 88},
    {"Student Name": "Bob", "Roll No": "002", "Mathematics": 78, "Science": 82, "English": 76},
]


def _targets(result):
    return {m.source_header: m.target_field for m in result.mappings}


def test_normalizers():
    assert normalize_header("  Roll   No ") == "roll no"
    assert normalize_subject_name("Social Science (Theory)") == "social_science_theory"


def test_levenshtein_similarity():
    assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
    assert levenshtein_similarity("", "") == 1.0
    assert levenshtein_similarity("abc", "abc") == 1.0


def test_standard_headers_map_fully():
    result = auto_map_columns(HEADERS, SAMPLE)
    assert _targets(result) == {
        "Student Name": "student_name",
        "Roll No": "roll_number",
        "Mathematics": "subject_mathematics",
        "Science": "subject_science",
        "English": "subject_english",
    }
    assert result.confidence == 1.0
    assert result.missing_required_fields == []
    assert result.unmapped_headers == []
    assert [m.source_header for m in result.subject_mappings] == ["Mathematics", "Science", "English"]


@pytest.mark.parametrize("header", ["Roll No", "Roll Number", "Roll No.", "Admission No", "Reg No", "ID"])
def test_roll_number_variants(header):
    result = auto_map_columns(["Name", header], [{"Name": "Alice", header: "A1"}])
    assert _targets(result)[header] == "roll_number"
    assert result.confidence == 1.0


def test_pattern_hits_are_required_flagged_and_typed():
    result = auto_map_columns(["Name", "Roll", "Total", "DOB"], [])
    by_header = {m.source_header: m for m in result.mappings}
    assert by_header["Name"].required
    assert by_header["Total"].target_field == "total_marks"
    assert by_header["Total"].data_type is FieldType.NUMBER
    assert by_header["DOB"].data_type is FieldType.DATE
    assert not by_header["Total"].required


def test_numeric_column_matching_a_field_pattern_is_not_a_subject():
    sample = [{"Name": "Alice", "Roll": "1", "Total": 255, "Physics": 80}]
    result = auto_map_columns(["Name", "Roll", "Total", "Physics"], sample)
    assert _targets(result)["Total"] == "total_marks"
    assert _targets(result)["Physics"] == "subject_physics"


def test_numeric_ratio_threshold():
    mostly_numeric = [{"Quiz": v} for v in (10, 20, 30, "absent")]
    half_numeric = [{"Quiz": v} for v in (10, 20, "absent")]
    assert "Quiz" in _targets(auto_map_columns(["Quiz"], mostly_numeric))
    assert "Quiz" not in _targets(auto_map_columns(["Quiz"], half_numeric))


def test_numeric_column_in_suggestion_band_becomes_subject():
    # a numeric sample outranks a weak name similarity
    def similarity(a, b):
        return 0.5 if a == "marks obtained" else 0.0

    sample = [{"Name": "Alice", "Roll": "1", "Marks Obtained": 72}]
    result = auto_map_columns(["Name", "Roll", "Marks Obtained"], sample, similarity=similarity)
    assert _targets(result)["Marks Obtained"] == "subject_marks_obtained"
    assert result.suggestions == []
    assert result.unmapped_headers == []


def test_science_and_social_are_subjects_not_suggestions():
    assert 0.3 <= max(levenshtein_similarity("science", label) for label in FIELD_LABELS.values()) <= 0.6
    sample = [{"Name": "Alice", "Roll": "1", "Science": 80, "Social": 64}]
    result = auto_map_columns(["Name", "Roll", "Science", "Social"], sample)
    assert _targets(result)["Science"] == "subject_science"
    assert _targets(result)["Social"] == "subject_social"
    assert [s.source_header for s in result.suggestions] == []


def test_colliding_subject_keys_get_suffix():
    sample = [{"Name": "Alice", "Roll": "1", "Maths": 1, "Maths!": 2}]
    result = auto_map_columns(["Name", "Roll", "Maths", "Maths!"], sample)
    assert _targets(result)["Maths"] == "subject_maths"
    assert _targets(result)["Maths!"] == "subject_maths_2"


def test_mapping_is_deterministic():
    first = auto_map_columns(HEADERS, SAMPLE).to_dict()
    second = auto_map_columns(HEADERS, SAMPLE).to_dict()
    assert first == second


def test_mid_confidence_header_only_suggests():
    def similarity(a, b):
        return 0.5 if (a, b) == ("pupil ident", "roll number") else 0.0

    sample = [{"Name": "Alice", "Pupil Ident": "R-1"}]
    result = auto_map_columns(["Name", "Pupil Ident"], sample, similarity=similarity)
    assert _targets(result) == {"Name": "student_name"}
    assert result.missing_required_fields == ["roll_number"]
    assert result.confidence == 0.5
    assert "Pupil Ident" in result.unmapped_headers
    reasons = {s.reason for s in result.suggestions}
    assert "Column name similarity to roll_number" in reasons
    assert "Suggested for missing required field: roll_number" in reasons
    assert all(s.suggested_field == "roll_number" and s.confidence == 0.5 for s in result.suggestions)

    accepted = accept_suggestion(result, result.suggestions[0])
    assert _targets(accepted)["Pupil Ident"] == "roll_number"
    assert accepted.missing_required_fields == []
    assert accepted.confidence == 1.0
    assert accepted.suggestions == []


def test_nothing_mappable():
    result = auto_map_columns(["Foo", "Bar"], [{"Foo": "x", "Bar": "y"}], similarity=lambda a, b: 0.0)
    assert result.mappings == []
    assert result.confidence == 0.0
    assert result.missing_required_fields == ["student_name", "roll_number"]
    assert result.unmapped_headers == ["Foo", "Bar"]


class TestOverrides:
    def test_unmap_and_subject(self):
        headers = [*HEADERS, "Remarks"]
        result = auto_map_columns(headers, SAMPLE)
        updated = apply_overrides(result, {"English": None, "Remarks": "subject"})
        targets = _targets(updated)
        assert "English" not in targets
        assert "English" in updated.unmapped_headers
        assert targets["Remarks"] == "subject_remarks"

    def test_override_moves_claimed_field(self):
        headers = [*HEADERS, "Adm"]
        result = auto_map_columns(headers, SAMPLE)
        updated = apply_overrides(result, {"Adm": "roll_number"})
        targets = _targets(updated)
        assert targets["Adm"] == "roll_number"
        assert "Roll No" not in targets
        assert "Roll No" in updated.unmapped_headers
        assert updated.missing_required_fields == []

    def test_unmapping_required_field_reports_missing(self):
        result = auto_map_columns(HEADERS, SAMPLE)
        updated = apply_overrides(result, {"Roll No": ""})
        assert updated.missing_required_fields == ["roll_number"]
        assert updated.confidence == 0.5


def test_build_mapping_rejects_unknown_target():
    with pytest.raises(ValueError, match="Unknown target field"):
        build_mapping("Foo", "favourite_colour")


class TestValidateMappings:
    def test_valid(self):
        result = auto_map_columns(HEADERS, SAMPLE)
        check = validate_mappings(result.mappings, HEADERS)
        assert check.is_valid
        assert check.subject_column_count == 3
        assert check.required_fields_mapped == 2
        assert check.warnings == []

    def test_errors_and_warnings(self):
        mappings = [
            build_mapping("Name", "student_name"),
            build_mapping("Pupil", "student_name"),
            build_mapping("Ghost", "class"),
        ]
        check = validate_mappings(mappings, ["Name", "Pupil", "Notes"])
        assert not check.is_valid
        assert "Mapped column 'Ghost' not found in headers" in check.errors
        assert "Missing required fields: roll_number" in check.errors
        assert "Field 'student_name' is mapped multiple times" in check.errors
        assert "No subject columns mapped - ensure at least one subject is included" in check.warnings
        assert "Unmapped columns: Notes" in check.warnings


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, 0.0),
        ("", 0.0),
        ("Absent", 0.0),
        ("ab", 0.0),
        ("A", 0.0),
        ("fail", 0.0),
        ("F", 0.0),
        ("Pass", 40.0),
        ("p", 40.0),
        ("85.5", 85.5),
        (92, 92.0),
        (120, 100.0),
        (-5, 0.0),
        ("n/a", 0.0),
    ],
)
def test_marks_transformer(raw, expected):
    assert marks_transformer(raw) == expected
