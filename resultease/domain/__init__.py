"""Domain model shared by every downstream computation."""

from .entities import DEFAULT_MAX_MARKS, Student, Subject, compare_roll_numbers, normalize_roll_number
from .errors import DomainInvariantViolation
from .result_set import ResultSet, StudentResult, dense_competition_ranks
from .value_objects import (
    DEFAULT_PASS_THRESHOLD,
    GRADE_ORDER,
    Marks,
    Percentage,
    letter_grade_for,
    performance_category_for,
    round2,
)

__all__ = [
    "DEFAULT_MAX_MARKS",
    "DEFAULT_PASS_THRESHOLD",
    "DomainInvariantViolation",
    "GRADE_ORDER",
    "Marks",
    "Percentage",
    "ResultSet",
    "Student",
    "StudentResult",
    "Subject",
    "compare_roll_numbers",
    "dense_competition_ranks",
    "letter_grade_for",
    "normalize_roll_number",
    "performance_category_for",
    "round2",
]
