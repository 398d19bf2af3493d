from __future__ import annotations

from ..models.processing_result import BatchResult

"""SUMMARY line rendering for one CLI run.

Format:
SUMMARY files={total}/{total} valid={valid} invalid={invalid} students={students}
avg_pct={average} pass_rate={pass_rate} elapsed_sec={elapsed}
(one line; wrapped here for readability)
"""

__all__ = ["render_summary_line", "format_number"]


def format_number(value: float) -> str:
    """Integers without a decimal point, tiny values without scientific notation, else 2 decimals."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: BatchResult) -> str:
    """Render the SUMMARY line.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> r = BatchResult(valid_files=1, invalid_files=0, total_students=4, start_time=t, end_time=t,
    ...                 elapsed_seconds=2.0, average_percentage=84.75, pass_rate=100.0)
    >>> render_summary_line(1, r)
    'SUMMARY files=1/1 valid=1 invalid=0 students=4 avg_pct=84.75 pass_rate=100 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"valid={result.valid_files} "
        f"invalid={result.invalid_files} "
        f"students={result.total_students} "
        f"avg_pct={format_number(result.average_percentage)} "
        f"pass_rate={format_number(result.pass_rate)} "
        f"elapsed_sec={format_number(result.elapsed_seconds)}"
    )
