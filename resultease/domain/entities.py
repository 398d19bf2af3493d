from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .errors import DomainInvariantViolation

"""Student and Subject entities."""

__all__ = [
    "Student",
    "Subject",
    "DEFAULT_MAX_MARKS",
    "normalize_roll_number",
    "compare_roll_numbers",
]

DEFAULT_MAX_MARKS = 100.0
MAX_SUBJECT_MARKS = 1000.0

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize_roll_number(roll_number: Any) -> str:
    """Identity key for a roll number: trimmed and case-folded."""
    return str(roll_number).strip().lower()


def _title_case(text: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in text.split(" "))


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Student:
    """A student identified by roll number within one result set."""

    name: str
    roll_number: str
    class_name: str | None = None
    section: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise DomainInvariantViolation("Student name must be a non-empty string")
        if len(self.name.strip()) < 2:
            raise DomainInvariantViolation("Student name must be at least 2 characters long")
        if not isinstance(self.roll_number, str) or not self.roll_number.strip():
            raise DomainInvariantViolation("Roll number must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "roll_number", self.roll_number.strip())
        object.__setattr__(self, "class_name", _optional_text(self.class_name))
        object.__setattr__(self, "section", _optional_text(self.section))

    @property
    def identity(self) -> str:
        return normalize_roll_number(self.roll_number)

    @property
    def display_name(self) -> str:
        return _title_case(self.name)

    @property
    def full_identifier(self) -> str:
        return f"{self.display_name} ({self.roll_number})"

    @property
    def class_display(self) -> str:
        if self.class_name and self.section:
            return f"{self.class_name}-{self.section}"
        return self.class_name or "N/A"

    @property
    def sortable_roll_number(self) -> str:
        return _NON_ALNUM_RE.sub("", self.roll_number.lower())

    def matches(self, other: Student) -> bool:
        return self.identity == other.identity

    def matches_roll_number(self, roll_number: str) -> bool:
        return self.identity == normalize_roll_number(roll_number)

    def __str__(self) -> str:
        return self.full_identifier

    @classmethod
    def from_raw_data(cls, data: dict[str, Any]) -> Student:
        name = data.get("name")
        roll_number = data.get("roll_number")
        if not name:
            raise DomainInvariantViolation("Student name is required")
        if roll_number is None or str(roll_number).strip() == "":
            raise DomainInvariantViolation("Student roll number is required")
        return cls(
            name=str(name),
            roll_number=str(roll_number),
            class_name=data.get("class"),
            section=data.get("section"),
        )


def compare_roll_numbers(a: Student, b: Student) -> int:
    """Numeric comparison when both roll numbers are integers, else lexical."""
    try:
        a_num, b_num = int(a.roll_number), int(b.roll_number)
    except ValueError:
        return (a.roll_number > b.roll_number) - (a.roll_number < b.roll_number)
    return (a_num > b_num) - (a_num < b_num)


@dataclass(frozen=True)
class Subject:
    """A subject with its maximum marks (0 < max_marks <= 1000)."""

    name: str
    max_marks: float = DEFAULT_MAX_MARKS
    optional: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise DomainInvariantViolation("Subject name must be a non-empty string")
        if isinstance(self.max_marks, bool) or not isinstance(self.max_marks, (int, float)):
            raise DomainInvariantViolation("Maximum marks must be a number")
        if self.max_marks <= 0:
            raise DomainInvariantViolation("Maximum marks must be a positive number")
        if self.max_marks > MAX_SUBJECT_MARKS:
            raise DomainInvariantViolation(f"Maximum marks cannot exceed {MAX_SUBJECT_MARKS:g}")
        object.__setattr__(self, "name", self.name.strip())

    @property
    def normalized_name(self) -> str:
        return _NON_ALNUM_RE.sub("", self.name.lower())

    @property
    def display_name(self) -> str:
        return _title_case(self.name)

    def matches(self, other: Subject) -> bool:
        return self.normalized_name == other.normalized_name

    def matches_name(self, name: str) -> bool:
        return self.normalized_name == _NON_ALNUM_RE.sub("", name.lower())

    def percentage_of(self, marks: float) -> float:
        return marks / self.max_marks * 100

    def __str__(self) -> str:
        return f"{self.name} ({self.max_marks:g} marks)"
