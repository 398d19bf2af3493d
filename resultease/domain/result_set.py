from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .entities import DEFAULT_MAX_MARKS, Student, Subject, normalize_roll_number
from .errors import DomainInvariantViolation
from .value_objects import Marks, Percentage, round2

"""StudentResult and the ResultSet aggregate root.

A ResultSet is built once (directly or through ``ResultSet.from_raw_data``),
ranked by an explicit ``calculate_ranks()`` call, and is otherwise read-only.
"""

__all__ = [
    "StudentResult",
    "ResultSet",
    "dense_competition_ranks",
]


def dense_competition_ranks(values: Sequence[float]) -> list[int]:
    """Ranks for values already sorted best-first.

    A value equal to its predecessor shares the predecessor's rank; any other
    value takes its 1-based position, so ties leave gaps (1, 2, 2, 4).
    """
    ranks: list[int] = []
    for i, value in enumerate(values):
        if i > 0 and value == values[i - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(i + 1)
    return ranks


@dataclass
class StudentResult:
    """One student's marks across every subject of the owning ResultSet."""

    student: Student
    marks: dict[str, Marks]
    total_marks: Marks
    percentage: Percentage
    rank: int | None = None
    subject_rank: int | None = None  # set only on copies returned by subject ranking

    def mark_for(self, subject_name: str) -> Marks | None:
        return self.marks.get(subject_name)

    def mark_value(self, subject_name: str) -> float:
        """Raw mark for a subject, 0 when absent."""
        mark = self.marks.get(subject_name)
        return mark.value if mark is not None else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "student": {
                "name": self.student.name,
                "roll_number": self.student.roll_number,
                "class": self.student.class_name,
                "section": self.student.section,
            },
            "marks_by_subject": {name: m.value for name, m in self.marks.items()},
            "total_marks": round2(self.total_marks.value),
            "percentage": round2(self.percentage.value),
            "rank": self.rank,
        }


class ResultSet:
    """All subjects and student outcomes of one exam, keyed by roll number."""

    def __init__(
        self,
        result_id: str,
        title: str,
        subjects: Sequence[Subject],
        student_results: Iterable[StudentResult] = (),
        created_at: datetime | None = None,
    ) -> None:
        if not isinstance(result_id, str) or not result_id.strip():
            raise DomainInvariantViolation("Result ID must be a non-empty string")
        if not isinstance(title, str) or not title.strip():
            raise DomainInvariantViolation("Result title must be a non-empty string")
        if not subjects:
            raise DomainInvariantViolation("Result must have at least one subject")
        names = [s.name for s in subjects]
        if len(set(names)) != len(names):
            raise DomainInvariantViolation(f"Duplicate subject names: {names}")

        self._id = result_id
        self._title = title.strip()
        self._subjects: tuple[Subject, ...] = tuple(subjects)
        self._results: dict[str, StudentResult] = {}
        self._created_at = created_at or datetime.now(UTC)
        self._max_total_marks = sum(s.max_marks for s in self._subjects)
        for result in student_results:
            self._add_student_result(result)

    def _add_student_result(self, result: StudentResult) -> None:
        for subject in self._subjects:
            if subject.name not in result.marks:
                raise DomainInvariantViolation(
                    f"Missing marks for subject: {subject.name} (roll number {result.student.roll_number})"
                )
        key = result.student.identity
        if key in self._results:
            raise DomainInvariantViolation(f"Duplicate roll number: {result.student.roll_number}")
        self._results[key] = result

    @property
    def id(self) -> str:
        return self._id

    @property
    def title(self) -> str:
        return self._title

    @property
    def subjects(self) -> tuple[Subject, ...]:
        return self._subjects

    @property
    def subject_names(self) -> list[str]:
        return [s.name for s in self._subjects]

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def max_total_marks(self) -> float:
        return self._max_total_marks

    @property
    def student_results(self) -> list[StudentResult]:
        return list(self._results.values())

    @property
    def student_count(self) -> int:
        return len(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[StudentResult]:
        return iter(list(self._results.values()))

    def get_student_result(self, roll_number: str) -> StudentResult | None:
        return self._results.get(normalize_roll_number(roll_number))

    @property
    def is_ranked(self) -> bool:
        return bool(self._results) and all(r.rank is not None for r in self._results.values())

    def calculate_ranks(self) -> None:
        """Assign class-wide ranks by percentage, ties broken by total marks.

        Idempotent: ranks are recomputed from scratch on every call.
        """
        ordered = sorted(
            self._results.values(),
            key=lambda r: (-r.percentage.value, -r.total_marks.value),
        )
        ranks = dense_competition_ranks([r.percentage.value for r in ordered])
        for result, rank in zip(ordered, ranks, strict=True):
            result.rank = rank

    def students_by_rank(self) -> list[StudentResult]:
        ranked = [r for r in self._results.values() if r.rank is not None]
        return sorted(ranked, key=lambda r: r.rank)  # type: ignore[arg-type, return-value]

    def top_students(self, count: int = 10) -> list[StudentResult]:
        return self.students_by_rank()[:count]

    def to_export(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "title": self._title,
            "subjects": [
                {"name": s.name, "max_marks": s.max_marks, "optional": s.optional}
                for s in self._subjects
            ],
            "student_results": [r.to_dict() for r in self._results.values()],
            "created_at": self._created_at.isoformat().replace("+00:00", "Z"),
            "max_total_marks": self._max_total_marks,
        }

    @classmethod
    def from_raw_data(
        cls,
        result_id: str,
        title: str,
        subjects: Sequence[str],
        student_data: Iterable[Mapping[str, Any]],
        max_marks: float = DEFAULT_MAX_MARKS,
    ) -> ResultSet:
        """Build a ResultSet from raw subject names and per-student raw marks.

        Each ``student_data`` item carries ``name``, ``roll_number``, optional
        ``class``/``section`` and a ``marks`` mapping keyed by subject name whose
        values are numbers or strings ("absent"/"ab" read as 0). A subject
        missing from any student's marks raises DomainInvariantViolation.
        """
        subject_objs = [Subject(name, max_marks) for name in subjects]
        max_total = sum(s.max_marks for s in subject_objs)
        results: list[StudentResult] = []
        for data in student_data:
            student = Student.from_raw_data(dict(data))
            raw_marks: Mapping[str, Any] = data.get("marks") or {}
            marks: dict[str, Marks] = {}
            for subject in subject_objs:
                if subject.name not in raw_marks or raw_marks[subject.name] is None:
                    raise DomainInvariantViolation(
                        f"Missing marks for subject: {subject.name} (roll number {student.roll_number})"
                    )
                raw = raw_marks[subject.name]
                marks[subject.name] = Marks.from_string(raw) if isinstance(raw, str) else Marks(raw)
            total = sum(m.value for m in marks.values())
            results.append(
                StudentResult(
                    student=student,
                    marks=marks,
                    total_marks=Marks.total(total),
                    percentage=Percentage.from_marks(total, max_total),
                )
            )
        return cls(result_id, title, subject_objs, results)
