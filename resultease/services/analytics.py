from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..domain.result_set import ResultSet, StudentResult
from ..domain.value_objects import DEFAULT_PASS_THRESHOLD, Percentage, performance_category_for, round2
from .stats import class_average_percentage, class_statistics, subject_average

"""Analytics engine: pass/fail rates, struggling and high-performing
students, subject difficulty, templated insights and trends across results.
"""

__all__ = [
    "DIFFICULTY_ORDER",
    "PassFailRates",
    "StrugglingStudent",
    "HighPerformer",
    "SubjectDifficulty",
    "InsightStatistics",
    "PerformanceInsights",
    "TrendAnalysis",
    "pass_fail_rates",
    "subject_pass_fail_rates",
    "identify_struggling_students",
    "identify_high_performers",
    "classify_difficulty",
    "analyze_subject_difficulty",
    "generate_performance_insights",
    "analyze_performance_trends",
]

logger = logging.getLogger(__name__)

DEFAULT_EXCELLENCE_THRESHOLD = 85.0
DEFAULT_MIN_FAILURES = 2
DEFAULT_TREND_THRESHOLD = 5.0
HIGH_SPREAD = 15.0
LOW_SPREAD = 5.0

DIFFICULTY_ORDER: tuple[str, ...] = ("Easy", "Moderate", "Difficult", "Very Difficult")
# (min pass rate, min average, label), easiest first
DIFFICULTY_BANDS: tuple[tuple[float, float, str], ...] = (
    (90, 75, "Easy"),
    (75, 60, "Moderate"),
    (50, 45, "Difficult"),
)


@dataclass(frozen=True)
class PassFailRates:
    total_students: int
    passed: int
    failed: int
    pass_percentage: Percentage
    fail_percentage: Percentage

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_students": self.total_students,
            "passed": self.passed,
            "failed": self.failed,
            "pass_percentage": round2(self.pass_percentage.value),
            "fail_percentage": round2(self.fail_percentage.value),
        }


@dataclass(frozen=True)
class StrugglingStudent:
    student: StudentResult
    failed_subjects: list[str]

    @property
    def total_failures(self) -> int:
        return len(self.failed_subjects)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.student.student.name,
            "roll_number": self.student.student.roll_number,
            "failed_subjects": list(self.failed_subjects),
            "total_failures": self.total_failures,
        }


@dataclass(frozen=True)
class HighPerformer:
    student: StudentResult
    excellent_subjects: list[str]
    overall_grade: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.student.student.name,
            "roll_number": self.student.student.roll_number,
            "percentage": round2(self.student.percentage.value),
            "excellent_subjects": list(self.excellent_subjects),
            "overall_grade": self.overall_grade,
        }


@dataclass(frozen=True)
class SubjectDifficulty:
    subject_name: str
    average_marks: float
    pass_rate: Percentage
    difficulty: str
    students_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_name": self.subject_name,
            "average_marks": round2(self.average_marks),
            "pass_rate": round2(self.pass_rate.value),
            "difficulty": self.difficulty,
            "students_count": self.students_count,
        }


@dataclass(frozen=True)
class InsightStatistics:
    total_students: int
    class_average: float
    pass_rate: float
    standard_deviation: float
    top_performers: int
    struggling_students: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_students": self.total_students,
            "class_average": round2(self.class_average),
            "pass_rate": round2(self.pass_rate),
            "standard_deviation": round2(self.standard_deviation),
            "top_performers": self.top_performers,
            "struggling_students": self.struggling_students,
        }


@dataclass(frozen=True)
class PerformanceInsights:
    class_performance: str
    key_insights: list[str]
    recommendations: list[str]
    strengths: list[str]
    concerns: list[str]
    statistics: InsightStatistics

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_performance": self.class_performance,
            "key_insights": list(self.key_insights),
            "recommendations": list(self.recommendations),
            "strengths": list(self.strengths),
            "concerns": list(self.concerns),
            "statistics": self.statistics.to_dict(),
        }


@dataclass(frozen=True)
class TrendAnalysis:
    trend: str  # Improving | Declining | Stable
    average_change: float
    class_averages: list[float] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend,
            "average_change": round2(self.average_change),
            "class_averages": [round2(v) for v in self.class_averages],
            "insights": list(self.insights),
        }


def _rates(total: int, passed: int) -> PassFailRates:
    if total == 0:
        return PassFailRates(0, 0, 0, Percentage.zero(), Percentage.zero())
    return PassFailRates(
        total_students=total,
        passed=passed,
        failed=total - passed,
        pass_percentage=Percentage.from_fraction(passed, total),
        fail_percentage=Percentage.from_fraction(total - passed, total),
    )


def pass_fail_rates(result_set: ResultSet, threshold: float = DEFAULT_PASS_THRESHOLD) -> PassFailRates:
    """Students whose overall percentage meets ``threshold`` pass."""
    results = result_set.student_results
    return _rates(len(results), sum(1 for r in results if r.percentage.is_passing(threshold)))


def subject_pass_fail_rates(
    result_set: ResultSet, threshold: float = DEFAULT_PASS_THRESHOLD
) -> dict[str, PassFailRates]:
    rates: dict[str, PassFailRates] = {}
    for name in result_set.subject_names:
        marks = [r.mark_for(name) for r in result_set.student_results]
        marks = [m for m in marks if m is not None]
        rates[name] = _rates(len(marks), sum(1 for m in marks if m.is_passing(threshold)))
    return rates


def identify_struggling_students(
    result_set: ResultSet,
    threshold: float = DEFAULT_PASS_THRESHOLD,
    min_failures: int = DEFAULT_MIN_FAILURES,
) -> list[StrugglingStudent]:
    """Students below ``threshold`` in at least ``min_failures`` subjects, most failures first."""
    struggling = []
    for r in result_set.student_results:
        failed = [name for name, m in r.marks.items() if m.value < threshold]
        if len(failed) >= min_failures:
            struggling.append(StrugglingStudent(r, failed))
    return sorted(struggling, key=lambda s: -s.total_failures)


def identify_high_performers(
    result_set: ResultSet, excellence_threshold: float = DEFAULT_EXCELLENCE_THRESHOLD
) -> list[HighPerformer]:
    """Students with any subject at or above ``excellence_threshold`` or an A-band overall grade."""
    performers = []
    for r in result_set.student_results:
        excellent = [name for name, m in r.marks.items() if m.value >= excellence_threshold]
        grade = r.percentage.letter_grade
        if excellent or grade.startswith("A"):
            performers.append(HighPerformer(r, excellent, grade))
    return sorted(performers, key=lambda p: -p.student.percentage.value)


def classify_difficulty(average: float, pass_rate: float) -> str:
    for min_rate, min_average, label in DIFFICULTY_BANDS:
        if pass_rate >= min_rate and average >= min_average:
            return label
    return "Very Difficult"


def analyze_subject_difficulty(
    result_set: ResultSet, threshold: float = DEFAULT_PASS_THRESHOLD
) -> list[SubjectDifficulty]:
    """One entry per subject, easiest first (ties keep subject order)."""
    rates = subject_pass_fail_rates(result_set, threshold)
    analysis = []
    for name in result_set.subject_names:
        average = subject_average(result_set, name)
        rate = rates[name]
        analysis.append(
            SubjectDifficulty(
                subject_name=name,
                average_marks=average,
                pass_rate=rate.pass_percentage,
                difficulty=classify_difficulty(average, rate.pass_percentage.value),
                students_count=rate.total_students,
            )
        )
    return sorted(analysis, key=lambda s: DIFFICULTY_ORDER.index(s.difficulty))


def _empty_insights() -> PerformanceInsights:
    return PerformanceInsights(
        class_performance="Poor",
        key_insights=["No student data available"],
        recommendations=["Upload student results to get insights"],
        strengths=[],
        concerns=[],
        statistics=InsightStatistics(0, 0.0, 0.0, 0.0, 0, 0),
    )


def generate_performance_insights(
    result_set: ResultSet,
    pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    excellence_threshold: float = DEFAULT_EXCELLENCE_THRESHOLD,
    min_failures: int = DEFAULT_MIN_FAILURES,
) -> PerformanceInsights:
    """Class performance label plus templated insights, recommendations, strengths and concerns."""
    total = result_set.student_count
    if total == 0:
        return _empty_insights()

    average = class_average_percentage(result_set).value
    spread = class_statistics(result_set).standard_deviation
    rates = pass_fail_rates(result_set, pass_threshold)
    pass_rate = rates.pass_percentage.value
    struggling = identify_struggling_students(result_set, pass_threshold, min_failures)
    performers = identify_high_performers(result_set, excellence_threshold)
    difficulty = analyze_subject_difficulty(result_set, pass_threshold)
    easy = [d.subject_name for d in difficulty if d.difficulty == "Easy"]
    hard = [d.subject_name for d in difficulty if d.difficulty in ("Difficult", "Very Difficult")]
    very_hard = [d.subject_name for d in difficulty if d.difficulty == "Very Difficult"]

    category = performance_category_for(average)
    key_insights = [
        f"Class average is {average:.2f}% ({category})",
        f"{rates.passed} of {total} students passed ({pass_rate:.2f}%)",
    ]
    if spread > HIGH_SPREAD:
        key_insights.append("Performance varies widely across students")
    elif total > 1 and spread < LOW_SPREAD:
        key_insights.append("Performance is consistent across students")
    if performers:
        key_insights.append(f"{len(performers)} high-performing students identified")
    if struggling:
        key_insights.append(f"{len(struggling)} students are struggling in multiple subjects")

    recommendations = []
    if struggling:
        recommendations.append("Provide additional support for struggling students")
    if pass_rate < 75:
        recommendations.append("Review teaching approach to improve the overall pass rate")
    if hard:
        recommendations.append(f"Focus revision on difficult subjects: {', '.join(hard)}")
    if spread > HIGH_SPREAD:
        recommendations.append("Consider differentiated instruction to address the wide performance gap")
    if not recommendations:
        recommendations.append("Maintain current teaching strategies")

    strengths = []
    if easy:
        strengths.append(f"Strong performance in: {', '.join(easy)}")
    if pass_rate >= 90:
        strengths.append("High overall pass rate")
    if performers:
        strengths.append(f"{len(performers)} students performing at an excellent level")

    concerns = []
    if very_hard:
        concerns.append(f"Very low performance in: {', '.join(very_hard)}")
    if pass_rate < 50:
        concerns.append("More than half the class did not pass")
    if struggling:
        concerns.append(f"{len(struggling)} students failing {min_failures} or more subjects")

    return PerformanceInsights(
        class_performance=category,
        key_insights=key_insights,
        recommendations=recommendations,
        strengths=strengths,
        concerns=concerns,
        statistics=InsightStatistics(
            total_students=total,
            class_average=average,
            pass_rate=pass_rate,
            standard_deviation=spread,
            top_performers=len(performers),
            struggling_students=len(struggling),
        ),
    )


def analyze_performance_trends(
    result_sets: Sequence[ResultSet], threshold: float = DEFAULT_TREND_THRESHOLD
) -> TrendAnalysis:
    """Label the direction of class averages across ordered results.

    The mean of consecutive deltas above ``threshold`` is Improving, below
    ``-threshold`` Declining, otherwise Stable.
    """
    if len(result_sets) < 2:
        return TrendAnalysis("Stable", 0.0, [], ["Need at least two results to analyze trends"])

    averages = [class_average_percentage(rs).value for rs in result_sets]
    deltas = [b - a for a, b in zip(averages, averages[1:])]
    change = sum(deltas) / len(deltas)
    # compared at reporting precision so an exact +-threshold stays Stable
    if round2(change) > threshold:
        trend = "Improving"
    elif round2(change) < -threshold:
        trend = "Declining"
    else:
        trend = "Stable"

    insights = [
        f"Class average moved from {averages[0]:.2f}% to {averages[-1]:.2f}% over {len(averages)} results",
        f"Average change between results: {change:+.2f} percentage points",
    ]
    if trend == "Improving":
        insights.append("Performance is improving over time")
    elif trend == "Declining":
        insights.append("Performance is declining and needs attention")
    else:
        insights.append("Performance is stable across results")
    logger.debug(f"analytics: trend={trend} change={change:.4f}")
    return TrendAnalysis(trend, change, averages, insights)
