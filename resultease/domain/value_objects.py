from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import DomainInvariantViolation

"""Value objects: Marks and Percentage.

Both are immutable and validated on construction. Invalid values raise
DomainInvariantViolation; the validation gate keeps untrusted input from ever
reaching these constructors.
"""

__all__ = [
    "Marks",
    "Percentage",
    "letter_grade_for",
    "performance_category_for",
    "GRADE_ORDER",
    "DEFAULT_PASS_THRESHOLD",
    "round2",
]

DEFAULT_PASS_THRESHOLD = 40.0

# (lower bound, grade), highest first
GRADE_BANDS: tuple[tuple[float, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
    (40, "E"),
)
GRADE_ORDER: tuple[str, ...] = ("A+", "A", "B", "C", "D", "E", "F")

CATEGORY_BANDS: tuple[tuple[float, str], ...] = (
    (90, "Excellent"),
    (75, "Good"),
    (60, "Average"),
    (40, "Below Average"),
)

ABSENT_TOKENS = frozenset({"absent", "ab"})


def round2(value: float) -> float:
    """Reporting precision: two decimals."""
    return round(float(value), 2)


def letter_grade_for(value: float) -> str:
    for bound, grade in GRADE_BANDS:
        if value >= bound:
            return grade
    return "F"


def performance_category_for(value: float) -> str:
    for bound, category in CATEGORY_BANDS:
        if value >= bound:
            return category
    return "Poor"


def _check_number(value: object, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DomainInvariantViolation(f"{label} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise DomainInvariantViolation(f"{label} must be finite, got {value}")
    return float(value)


@dataclass(frozen=True, order=True)
class Marks:
    """Marks obtained in one subject (0-100) or an aggregate total (>= 0)."""

    value: float
    is_total: bool = False

    def __post_init__(self) -> None:
        value = _check_number(self.value, "Marks")
        if value < 0:
            raise DomainInvariantViolation(f"Marks cannot be negative: {value}")
        if not self.is_total and value > 100:
            raise DomainInvariantViolation(f"Marks cannot exceed 100: {value}")
        object.__setattr__(self, "value", value)

    def is_passing(self, threshold: float = DEFAULT_PASS_THRESHOLD) -> bool:
        return self.value >= threshold

    @property
    def letter_grade(self) -> str:
        return letter_grade_for(self.value)

    def add(self, other: Marks) -> Marks:
        """Sum two marks; the result is always a total."""
        return Marks(self.value + other.value, is_total=True)

    def __str__(self) -> str:
        return f"{self.value:g}"

    @classmethod
    def from_string(cls, text: str) -> Marks:
        """Parse a raw cell string. Blank, "absent" and "ab" mean zero."""
        stripped = text.strip()
        if stripped == "" or stripped.lower() in ABSENT_TOKENS:
            return cls(0.0)
        try:
            parsed = float(stripped)
        except ValueError as e:
            raise DomainInvariantViolation(f"Invalid marks format: {text!r}") from e
        return cls(parsed)

    @classmethod
    def zero(cls) -> Marks:
        return cls(0.0)

    @classmethod
    def total(cls, value: float) -> Marks:
        return cls(value, is_total=True)


@dataclass(frozen=True, order=True)
class Percentage:
    """A percentage in the closed range 0-100."""

    value: float

    def __post_init__(self) -> None:
        value = _check_number(self.value, "Percentage")
        if value < 0:
            raise DomainInvariantViolation(f"Percentage cannot be negative: {value}")
        if value > 100:
            raise DomainInvariantViolation(f"Percentage cannot exceed 100: {value}")
        object.__setattr__(self, "value", value)

    def is_passing(self, threshold: float = DEFAULT_PASS_THRESHOLD) -> bool:
        return self.value >= threshold

    @property
    def letter_grade(self) -> str:
        return letter_grade_for(self.value)

    @property
    def performance_category(self) -> str:
        return performance_category_for(self.value)

    def format(self, decimals: int = 2) -> str:
        return f"{self.value:.{decimals}f}%"

    def __str__(self) -> str:
        return self.format()

    @classmethod
    def from_marks(cls, obtained: float, total: float) -> Percentage:
        if total <= 0:
            raise DomainInvariantViolation("Total marks must be greater than zero")
        return cls(obtained / total * 100)

    @classmethod
    def from_fraction(cls, numerator: float, denominator: float) -> Percentage:
        if denominator <= 0:
            raise DomainInvariantViolation("Denominator must be greater than zero")
        return cls(numerator / denominator * 100)

    @classmethod
    def zero(cls) -> Percentage:
        return cls(0.0)

    @classmethod
    def hundred(cls) -> Percentage:
        return cls(100.0)
