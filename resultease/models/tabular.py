from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""TabularData model: the normalized table produced by the reader.

Headers are unique within one TabularData; empty headers are auto-named
``Column_<n>``. Every row holds exactly one value per header (blank cells are
the empty string).
"""

__all__ = [
    "ReadOptions",
    "TabularMetadata",
    "TabularData",
]


@dataclass(frozen=True)
class ReadOptions:
    """Reader options. ``sheet_name`` wins over ``sheet_index`` when both are set."""
    sheet_index: int | None = None
    sheet_name: str | None = None
    header_row: int = 0  # 0-based offset of the header row
    max_rows: int | None = None  # cap on data rows (None = unlimited)
    skip_empty_rows: bool = True
    skip_empty_columns: bool = False

    def __post_init__(self) -> None:
        if self.header_row < 0:
            raise ValueError(f"header_row must be >= 0, got {self.header_row}")
        if self.max_rows is not None and self.max_rows < 0:
            raise ValueError(f"max_rows must be >= 0, got {self.max_rows}")
        if self.sheet_index is not None and self.sheet_index < 0:
            raise ValueError(f"sheet_index must be >= 0, got {self.sheet_index}")


@dataclass(frozen=True)
class TabularMetadata:
    file_name: str
    sheet_name: str
    total_rows: int  # rows in the raw sheet, header and title rows included
    total_columns: int  # columns in the raw sheet
    file_type: str  # "csv" | "xlsx" | "xls"

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "sheet_name": self.sheet_name,
            "total_rows": self.total_rows,
            "total_columns": self.total_columns,
            "file_type": self.file_type,
        }


@dataclass(frozen=True)
class TabularData:
    headers: list[str]
    rows: list[dict[str, Any]]
    metadata: TabularMetadata
    warnings: list[str] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)  # 1-based source row per data row

    def __post_init__(self) -> None:
        if len(set(self.headers)) != len(self.headers):
            raise ValueError(f"headers must be unique: {self.headers}")

    def column(self, header: str) -> list[Any]:
        return [row.get(header, "") for row in self.rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.headers),
            "rows": [dict(r) for r in self.rows],
            "metadata": self.metadata.to_dict(),
            "warnings": list(self.warnings),
        }
