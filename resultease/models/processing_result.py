from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Batch processing summary models used by the CLI and the SUMMARY line."""

__all__ = [
    "FileStat",
    "BatchResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome of one pipeline run."""
    file_name: str
    status: str  # "valid" | "invalid"
    students: int  # students in the constructed ResultSet (0 when invalid)
    quality_score: float  # overall data-quality score, 0 when never validated
    class_average: float  # class-average percentage, 0 when invalid
    elapsed_seconds: float
    failure: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Aggregate of every file processed in one CLI invocation."""
    valid_files: int
    invalid_files: int
    total_students: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    average_percentage: float  # mean class average over valid files
    pass_rate: float  # students passing / students, over valid files
    file_stats: list[FileStat] | None = None
