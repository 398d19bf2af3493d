from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..domain.result_set import ResultSet, StudentResult
from ..domain.value_objects import GRADE_ORDER, Marks, Percentage, round2

"""Statistics engine: subject and class-wide descriptive statistics.

Values are returned unrounded; ``to_dict()`` rounds to two decimals.
Standard deviations are population deviations (ddof=0).
"""

__all__ = [
    "DEFAULT_RANGES",
    "SubjectExtreme",
    "SubjectStatistics",
    "ClassStatistics",
    "subject_average",
    "all_subject_averages",
    "class_average_percentage",
    "highest_in_subject",
    "lowest_in_subject",
    "subject_statistics",
    "class_statistics",
    "grade_distribution",
    "marks_distribution",
]

DEFAULT_RANGES: tuple[float, ...] = (0, 40, 60, 75, 90, 100)


@dataclass(frozen=True)
class SubjectExtreme:
    marks: Marks
    students: list[StudentResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "marks": round2(self.marks.value),
            "students": [s.student.name for s in self.students],
        }


@dataclass(frozen=True)
class SubjectStatistics:
    average: float
    highest: float
    lowest: float
    median: float
    standard_deviation: float
    students_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "average": round2(self.average),
            "highest": round2(self.highest),
            "lowest": round2(self.lowest),
            "median": round2(self.median),
            "standard_deviation": round2(self.standard_deviation),
            "students_count": self.students_count,
        }


@dataclass(frozen=True)
class ClassStatistics:
    students_count: int
    average_percentage: float
    highest_percentage: float
    lowest_percentage: float
    median_percentage: float
    standard_deviation: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "students_count": self.students_count,
            "average_percentage": round2(self.average_percentage),
            "highest_percentage": round2(self.highest_percentage),
            "lowest_percentage": round2(self.lowest_percentage),
            "median_percentage": round2(self.median_percentage),
            "standard_deviation": round2(self.standard_deviation),
        }


def _describe(values: Sequence[float]) -> tuple[float, float, float, float, float]:
    arr = np.asarray(values, dtype=float)
    return (
        float(arr.mean()),
        float(arr.max()),
        float(arr.min()),
        float(np.median(arr)),
        float(arr.std()),
    )


def subject_average(result_set: ResultSet, subject_name: str) -> float:
    """Mean mark over every student; a missing mark counts as 0."""
    results = result_set.student_results
    if not results:
        return 0.0
    return float(np.mean([r.mark_value(subject_name) for r in results]))


def all_subject_averages(result_set: ResultSet) -> dict[str, float]:
    return {name: subject_average(result_set, name) for name in result_set.subject_names}


def class_average_percentage(result_set: ResultSet) -> Percentage:
    results = result_set.student_results
    if not results:
        return Percentage.zero()
    return Percentage(float(np.mean([r.percentage.value for r in results])))


def _extreme(result_set: ResultSet, subject_name: str, pick) -> SubjectExtreme:
    graded = [(r, r.mark_for(subject_name)) for r in result_set.student_results]
    graded = [(r, m) for r, m in graded if m is not None]
    if not graded:
        return SubjectExtreme(Marks.zero(), [])
    best = pick(m.value for _, m in graded)
    return SubjectExtreme(Marks(best), [r for r, m in graded if m.value == best])


def highest_in_subject(result_set: ResultSet, subject_name: str) -> SubjectExtreme:
    """Highest mark in a subject plus every student tied at it."""
    return _extreme(result_set, subject_name, max)


def lowest_in_subject(result_set: ResultSet, subject_name: str) -> SubjectExtreme:
    """Lowest mark in a subject plus every student tied at it."""
    return _extreme(result_set, subject_name, min)


def subject_statistics(result_set: ResultSet, subject_name: str, exclude_zero: bool = False) -> SubjectStatistics:
    """Average, extremes, median and standard deviation of one subject.

    Every student counts, zero marks included, matching class-wide statistics.
    ``exclude_zero=True`` restricts the computation to strictly positive marks.
    """
    marks = [r.mark_value(subject_name) for r in result_set.student_results]
    if exclude_zero:
        marks = [m for m in marks if m > 0]
    if not marks:
        return SubjectStatistics(0.0, 0.0, 0.0, 0.0, 0.0, 0)
    average, highest, lowest, median, std = _describe(marks)
    return SubjectStatistics(average, highest, lowest, median, std, len(marks))


def class_statistics(result_set: ResultSet) -> ClassStatistics:
    percentages = [r.percentage.value for r in result_set.student_results]
    if not percentages:
        return ClassStatistics(0, 0.0, 0.0, 0.0, 0.0, 0.0)
    average, highest, lowest, median, std = _describe(percentages)
    return ClassStatistics(len(percentages), average, highest, lowest, median, std)


def grade_distribution(result_set: ResultSet) -> dict[str, int]:
    """Students per letter grade, every grade A+ to F present."""
    counts = {grade: 0 for grade in GRADE_ORDER}
    for r in result_set.student_results:
        counts[r.percentage.letter_grade] += 1
    return counts


def _range_label(low: float, high: float) -> str:
    return f"{low:g}-{high:g}%"


def marks_distribution(result_set: ResultSet, ranges: Sequence[float] = DEFAULT_RANGES) -> dict[str, int]:
    """Students per percentage range ``[low, high)``; a value equal to the last bound lands in the top range."""
    if len(ranges) < 2 or any(b <= a for a, b in zip(ranges, ranges[1:])):
        raise ValueError(f"ranges must hold at least two strictly increasing bounds: {list(ranges)}")
    labels = [_range_label(a, b) for a, b in zip(ranges, ranges[1:])]
    counts = {label: 0 for label in labels}
    for r in result_set.student_results:
        value = r.percentage.value
        for label, low, high in zip(labels, ranges, ranges[1:]):
            if low <= value < high:
                counts[label] += 1
                break
        else:
            if value == ranges[-1]:
                counts[labels[-1]] += 1
    return counts
