from __future__ import annotations

import pytest

from resultease.domain import ResultSet, Subject
from resultease.services.stats import (
    all_subject_averages,
    class_average_percentage,
    class_statistics,
    grade_distribution,
    highest_in_subject,
    lowest_in_subject,
    marks_distribution,
    subject_average,
    subject_statistics,
)


def test_subject_average(class_result):
    assert subject_average(class_result, "Mathematics") == 81.5
    averages = all_subject_averages(class_result)
    assert list(averages) == ["Mathematics", "Science", "English"]
    assert averages["Science"] == 83.0


def test_class_average(class_result):
    avg = class_average_percentage(class_result)
    assert avg.value == pytest.approx(979 / 12)
    assert round(avg.value, 2) == 81.58


def test_subject_statistics(class_result):
    stats = subject_statistics(class_result, "Mathematics")
    assert stats.average == 81.5
    assert stats.highest == 95
    assert stats.lowest == 65
    assert stats.median == 83.0
    assert stats.standard_deviation == pytest.approx(127.25 ** 0.5)
    assert stats.students_count == 4
    assert stats.to_dict()["standard_deviation"] == 11.28


def test_subject_statistics_zero_marks():
    students = [
        {"name": "Aa", "roll_number": "1", "marks": {"Maths": 80}},
        {"name": "Bb", "roll_number": "2", "marks": {"Maths": "absent"}},
    ]
    rs = ResultSet.from_raw_data("rs", "T", ["Maths"], students)
    assert subject_statistics(rs, "Maths").average == 40.0
    excluded = subject_statistics(rs, "Maths", exclude_zero=True)
    assert excluded.average == 80.0
    assert excluded.students_count == 1


def test_empty_result_set_statistics():
    rs = ResultSet("empty", "Empty", [Subject("Maths")])
    assert subject_average(rs, "Maths") == 0.0
    assert class_average_percentage(rs).value == 0.0
    assert subject_statistics(rs, "Maths").students_count == 0
    assert class_statistics(rs).students_count == 0
    assert highest_in_subject(rs, "Maths").students == []


def test_extremes_include_ties():
    students = [
        {"name": "Aa", "roll_number": "1", "marks": {"Maths": 90}},
        {"name": "Bb", "roll_number": "2", "marks": {"Maths": 90}},
        {"name": "Cc", "roll_number": "3", "marks": {"Maths": 50}},
    ]
    rs = ResultSet.from_raw_data("rs", "T", ["Maths"], students)
    high = highest_in_subject(rs, "Maths")
    assert high.marks.value == 90
    assert [r.student.name for r in high.students] == ["Aa", "Bb"]
    assert lowest_in_subject(rs, "Maths").to_dict() == {"marks": 50.0, "students": ["Cc"]}


def test_class_statistics(class_result):
    stats = class_statistics(class_result)
    assert stats.students_count == 4
    assert stats.highest_percentage == pytest.approx(275 / 3)
    assert stats.lowest_percentage == pytest.approx(205 / 3)
    assert stats.to_dict()["average_percentage"] == 81.58


def test_grade_distribution(class_result):
    assert grade_distribution(class_result) == {"A+": 1, "A": 1, "B": 1, "C": 1, "D": 0, "E": 0, "F": 0}


def test_marks_distribution(class_result):
    assert marks_distribution(class_result) == {
        "0-40%": 0,
        "40-60%": 0,
        "60-75%": 1,
        "75-90%": 2,
        "90-100%": 1,
    }


def test_marks_distribution_top_bound_is_inclusive():
    rs = ResultSet.from_raw_data("rs", "T", ["Maths"], [{"name": "Aa", "roll_number": "1", "marks": {"Maths": 100}}])
    assert marks_distribution(rs, (0, 50, 100)) == {"0-50%": 0, "50-100%": 1}


def test_marks_distribution_rejects_bad_ranges(class_result):
    with pytest.raises(ValueError):
        marks_distribution(class_result, (50,))
    with pytest.raises(ValueError):
        marks_distribution(class_result, (0, 60, 40))
