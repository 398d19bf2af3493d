"""Workbook and CSV builders shared by the test suite."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

CLASS_ROWS: list[list[object]] = [
    ["Student Name", "Roll No", "Mathematics", "Science", "English"],
    ["Alice Top", "001", 95, 92, 88],
    ["Bob Middle", "002", 78, 82, 76],
    ["Charlie Low", "003", 65, 68, 72],
    ["Diana High", "004", 88, 90, 85],
]


def make_excel(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write raw rows (header included) to a workbook, one entry per sheet."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


def make_csv(path: Path, rows: list[list[object]], delimiter: str = ",") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(delimiter.join("" if c is None else str(c) for c in row) for row in rows)
    path.write_text(text + "\n", encoding="utf-8")
    return path
