from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, replace

from ..domain.result_set import ResultSet, StudentResult, dense_competition_ranks

"""Ranking engine.

Class-wide ranking orders by percentage (ties broken by total marks) and
assigns dense competition ranks on percentage: equal percentages share a
rank, the next distinct value takes its 1-based position (1, 2, 2, 4).
Subject ranking orders by one subject's mark only and stores the result in
``subject_rank``. All functions return new StudentResult copies; the
ResultSet passed in is never mutated.
"""

__all__ = [
    "RankDistribution",
    "rank_by_percentage",
    "rank_by_subject",
    "top_students",
    "bottom_students",
    "students_by_rank_range",
    "percentile",
    "rank_distribution",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankDistribution:
    """Counts per quartile of the rank-ordered class."""
    top_quartile: int
    second_quartile: int
    third_quartile: int
    bottom_quartile: int

    @property
    def total(self) -> int:
        return self.top_quartile + self.second_quartile + self.third_quartile + self.bottom_quartile

    def to_dict(self) -> dict[str, int]:
        return {
            "top_quartile": self.top_quartile,
            "second_quartile": self.second_quartile,
            "third_quartile": self.third_quartile,
            "bottom_quartile": self.bottom_quartile,
        }


def rank_by_percentage(results: Sequence[StudentResult]) -> list[StudentResult]:
    """Copies of ``results`` sorted best-first with ``rank`` set."""
    ordered = sorted(results, key=lambda r: (-r.percentage.value, -r.total_marks.value))
    ranks = dense_competition_ranks([r.percentage.value for r in ordered])
    return [replace(r, rank=rank) for r, rank in zip(ordered, ranks, strict=True)]


def rank_by_subject(results: Sequence[StudentResult], subject_name: str) -> list[StudentResult]:
    """Copies of the results holding a mark for ``subject_name``, best-first, with ``subject_rank`` set."""
    eligible = [r for r in results if r.mark_for(subject_name) is not None]
    # stable sort: equal marks keep input order
    ordered = sorted(eligible, key=lambda r: -r.mark_value(subject_name))
    ranks = dense_competition_ranks([r.mark_value(subject_name) for r in ordered])
    return [replace(r, subject_rank=rank) for r, rank in zip(ordered, ranks, strict=True)]


def top_students(result_set: ResultSet, count: int = 10) -> list[StudentResult]:
    if count <= 0:
        return []
    return rank_by_percentage(result_set.student_results)[:count]


def bottom_students(result_set: ResultSet, count: int = 10) -> list[StudentResult]:
    """The ``count`` lowest-ranked students, worst first."""
    if count <= 0:
        return []
    return rank_by_percentage(result_set.student_results)[-count:][::-1]


def students_by_rank_range(result_set: ResultSet, start: int, end: int) -> list[StudentResult]:
    """Positions ``start``..``end`` (1-based, inclusive) of the rank-ordered class."""
    if start < 1 or end < start:
        return []
    return rank_by_percentage(result_set.student_results)[start - 1:end]


def percentile(result: StudentResult, population: Sequence[StudentResult]) -> float:
    """(N - rank + 1) / N * 100; 0 when unranked or the population is empty."""
    n = len(population)
    if result.rank is None or n == 0:
        return 0.0
    return (n - result.rank + 1) / n * 100


def rank_distribution(result_set: ResultSet) -> RankDistribution:
    """Split the rank-ordered class into four buckets of ceil(N/4); the last takes the remainder."""
    n = result_set.student_count
    size = math.ceil(n / 4)
    counts = []
    remaining = n
    for _ in range(3):
        take = min(size, remaining)
        counts.append(take)
        remaining -= take
    counts.append(remaining)
    logger.debug(f"ranking: quartiles={counts} n={n}")
    return RankDistribution(*counts)
