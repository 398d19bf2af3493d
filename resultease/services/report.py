from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..domain.result_set import ResultSet, StudentResult
from ..domain.value_objects import round2
from ..models.config_models import AnalysisConfig
from .analytics import (
    HighPerformer,
    PassFailRates,
    PerformanceInsights,
    StrugglingStudent,
    SubjectDifficulty,
    analyze_subject_difficulty,
    generate_performance_insights,
    identify_high_performers,
    identify_struggling_students,
    pass_fail_rates,
)
from .ranking import RankDistribution, percentile, rank_by_percentage, rank_distribution
from .stats import (
    ClassStatistics,
    SubjectStatistics,
    class_statistics,
    grade_distribution,
    marks_distribution,
    subject_statistics,
)

"""Analysis report assembly: one ResultSet -> summary, per-subject analysis,
rankings, insights and distributions, serializable with ``to_dict()``.
"""

__all__ = [
    "SubjectReport",
    "AnalysisReport",
    "build_analysis_report",
]


@dataclass(frozen=True)
class SubjectReport:
    statistics: SubjectStatistics
    difficulty: SubjectDifficulty

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.difficulty.subject_name,
            "average": round2(self.statistics.average),
            "highest": round2(self.statistics.highest),
            "lowest": round2(self.statistics.lowest),
            "median": round2(self.statistics.median),
            "standard_deviation": round2(self.statistics.standard_deviation),
            "pass_rate": round2(self.difficulty.pass_rate.value),
            "difficulty": self.difficulty.difficulty,
        }


@dataclass(frozen=True)
class AnalysisReport:
    result_id: str
    title: str
    subject_count: int
    class_stats: ClassStatistics
    pass_fail: PassFailRates
    subjects: list[SubjectReport]
    rankings: list[StudentResult]
    insights: PerformanceInsights
    high_performers: list[HighPerformer]
    struggling_students: list[StrugglingStudent]
    grade_distribution: dict[str, int]
    marks_distribution: dict[str, int]
    rank_distribution: RankDistribution

    def _ranking_row(self, r: StudentResult) -> dict[str, Any]:
        return {
            "rank": r.rank,
            "name": r.student.name,
            "roll_number": r.student.roll_number,
            "total_marks": round2(r.total_marks.value),
            "percentage": round2(r.percentage.value),
            "grade": r.percentage.letter_grade,
            "percentile": round2(percentile(r, self.rankings)),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "result_id": self.result_id,
            "title": self.title,
            "summary": {
                "total_students": self.class_stats.students_count,
                "total_subjects": self.subject_count,
                "class_average": round2(self.class_stats.average_percentage),
                "pass_percentage": round2(self.pass_fail.pass_percentage.value),
                "highest_percentage": round2(self.class_stats.highest_percentage),
                "lowest_percentage": round2(self.class_stats.lowest_percentage),
            },
            "subject_analysis": [s.to_dict() for s in self.subjects],
            "student_rankings": [self._ranking_row(r) for r in self.rankings],
            "performance_insights": self.insights.to_dict(),
            "high_performers": [p.to_dict() for p in self.high_performers],
            "struggling_students": [s.to_dict() for s in self.struggling_students],
            "grade_distribution": dict(self.grade_distribution),
            "marks_distribution": dict(self.marks_distribution),
            "rank_distribution": self.rank_distribution.to_dict(),
        }


def build_analysis_report(result_set: ResultSet, analysis: AnalysisConfig | None = None) -> AnalysisReport:
    cfg = analysis or AnalysisConfig()
    difficulty = {d.subject_name: d for d in analyze_subject_difficulty(result_set, cfg.pass_threshold)}
    subjects = [
        SubjectReport(subject_statistics(result_set, name), difficulty[name])
        for name in result_set.subject_names
    ]
    return AnalysisReport(
        result_id=result_set.id,
        title=result_set.title,
        subject_count=len(result_set.subjects),
        class_stats=class_statistics(result_set),
        pass_fail=pass_fail_rates(result_set, cfg.pass_threshold),
        subjects=subjects,
        rankings=rank_by_percentage(result_set.student_results),
        insights=generate_performance_insights(
            result_set, cfg.pass_threshold, cfg.excellence_threshold, cfg.min_failures
        ),
        high_performers=identify_high_performers(result_set, cfg.excellence_threshold),
        struggling_students=identify_struggling_students(result_set, cfg.pass_threshold, cfg.min_failures),
        grade_distribution=grade_distribution(result_set),
        marks_distribution=marks_distribution(result_set, cfg.distribution_ranges),
        rank_distribution=rank_distribution(result_set),
    )
