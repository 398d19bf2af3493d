from __future__ import annotations

import csv
import io
import logging
import math
import re
from datetime import date, datetime, timedelta
from pathlib import PurePath
from typing import Any

import numpy as np
import pandas as pd

from ..models.tabular import ReadOptions, TabularData, TabularMetadata

"""Tabular reader: raw bytes of a CSV or workbook -> TabularData.

One sheet is read per call. Steps:
1. Decode the buffer into a raw DataFrame (no header inference)
2. Take the row at ``header_row`` as header; blank header cells are auto-named
3. Remaining rows become data rows, padded/truncated to the header width
4. Apply empty-row / empty-column skipping and the row cap, with warnings

Structural problems (no headers, no rows, unknown sheet, duplicate headers)
raise a StructuralError subclass; nothing partial is returned.
"""

__all__ = [
    "StructuralError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "NoHeadersError",
    "NoRowsError",
    "SheetNotFoundError",
    "DuplicateHeadersError",
    "detect_file_type",
    "list_sheet_names",
    "read_raw_sheet",
    "normalize_sheet",
    "read_table",
    "preview_table",
]

logger = logging.getLogger(__name__)


class StructuralError(Exception):
    """Raised when a file cannot yield a table at all."""

class UnsupportedFormatError(StructuralError):
    """Raised for unknown file types or undecodable content."""

class FileTooLargeError(StructuralError):
    """Raised by size guards before the reader is invoked."""

class NoHeadersError(StructuralError):
    """Raised when the header row is missing or blank."""

class NoRowsError(StructuralError):
    """Raised when no data rows remain after the header."""

class SheetNotFoundError(StructuralError):
    """Raised when the requested sheet name or index does not exist."""

class DuplicateHeadersError(StructuralError):
    """Raised when two header cells carry the same name."""


MIME_TYPES = {
    "text/csv": "csv",
    "application/csv": "csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-excel": "xls",
}
EXTENSIONS = {".csv": "csv", ".xlsx": "xlsx", ".xls": "xls"}

CSV_SHEET_NAME = "CSV"
CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

# Serial day 0 of the 1900 date system (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)
MAX_DATE_SERIAL = 2958465  # 9999-12-31

DATE_HEADER_RE = re.compile(r"(\bdate\b|\bdob\b|d\.o\.b|birth)", re.I)
INT_RE = re.compile(r"^[-+]?\d+$")
FLOAT_RE = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?$")


def detect_file_type(file_name: str, mime_type: str | None = None) -> str:
    """Resolve "csv" / "xlsx" / "xls" from the mime type, then the extension."""
    if mime_type and mime_type.lower() in MIME_TYPES:
        return MIME_TYPES[mime_type.lower()]
    suffix = PurePath(file_name).suffix.lower()
    if suffix in EXTENSIONS:
        return EXTENSIONS[suffix]
    raise UnsupportedFormatError("Only Excel (.xlsx, .xls) and CSV files are allowed")


def _decode_csv(buffer: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return buffer.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnsupportedFormatError("CSV content could not be decoded")  # pragma: no cover (latin-1 always decodes)


def _guess_delimiter(text: str) -> str:
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
    except csv.Error:
        return ","


def _coerce_csv_cell(cell: str) -> Any:
    """Numbers in CSV text become int/float; identifiers with leading zeros stay text."""
    text = cell.strip()
    if not text:
        return ""
    digits = text.lstrip("+-")
    if INT_RE.match(text):
        if len(digits) > 1 and digits.startswith("0"):
            return text
        return int(text)
    if FLOAT_RE.match(text):
        if len(digits) > 1 and digits.startswith("0") and not digits.startswith("0."):
            return text
        return float(text)
    return text


def _read_csv_frame(buffer: bytes) -> pd.DataFrame:
    text = _decode_csv(buffer)
    reader = csv.reader(io.StringIO(text), delimiter=_guess_delimiter(text))
    rows = [[_coerce_csv_cell(c) for c in row] for row in reader]
    # ragged rows are padded with None by the DataFrame constructor
    return pd.DataFrame(rows, dtype=object)


def _open_workbook(buffer: bytes) -> pd.ExcelFile:
    try:
        return pd.ExcelFile(io.BytesIO(buffer))
    except Exception as e:
        raise UnsupportedFormatError(f"Failed to parse workbook: {e}") from e


def list_sheet_names(buffer: bytes, file_type: str) -> list[str]:
    if file_type == "csv":
        return [CSV_SHEET_NAME]
    return [str(name) for name in _open_workbook(buffer).sheet_names]


def read_raw_sheet(
    buffer: bytes, file_type: str, options: ReadOptions | None = None
) -> tuple[str, pd.DataFrame, list[str]]:
    """Read the selected sheet without header inference.

    Returns (sheet name, raw DataFrame, warnings).
    """
    options = options or ReadOptions()
    if file_type == "csv":
        if options.sheet_name not in (None, CSV_SHEET_NAME):
            raise SheetNotFoundError(f"Sheet '{options.sheet_name}' not found")
        if options.sheet_index not in (None, 0):
            raise SheetNotFoundError(f"Sheet index {options.sheet_index} is out of range")
        return CSV_SHEET_NAME, _read_csv_frame(buffer), []

    if file_type not in ("xlsx", "xls"):
        raise UnsupportedFormatError(f"Unsupported file type: {file_type}")

    xls = _open_workbook(buffer)
    names = [str(n) for n in xls.sheet_names]
    if not names:
        raise NoHeadersError("Workbook contains no sheets")
    if options.sheet_name is not None:
        if options.sheet_name not in names:
            raise SheetNotFoundError(f"Sheet '{options.sheet_name}' not found")
        sheet = options.sheet_name
    elif options.sheet_index is not None:
        if not 0 <= options.sheet_index < len(names):
            raise SheetNotFoundError(f"Sheet index {options.sheet_index} is out of range")
        sheet = names[options.sheet_index]
    else:
        sheet = names[0]

    warnings: list[str] = []
    if len(names) > 1:
        warnings.append(f"File contains {len(names)} sheets. Only parsing '{sheet}'.")
    # keep_default_na=False: strings such as "NA" stay as written
    df = xls.parse(sheet, header=None, keep_default_na=False, dtype=object)
    return sheet, df, warnings


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT or value is pd.NA:
        return True
    return isinstance(value, str) and value.strip() == ""


def _serial_to_iso(serial: float) -> str:
    return (EXCEL_EPOCH + timedelta(days=int(serial))).isoformat()


def _clean_cell(value: Any, date_column: bool = False) -> Any:
    """Normalize one raw cell: blanks -> "", dates -> ISO date, integral floats -> int."""
    if _is_blank(value):
        return ""
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.date().isoformat()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).date().isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if date_column and 0 < value <= MAX_DATE_SERIAL:
            return _serial_to_iso(value)
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _build_headers(raw_header: list[Any]) -> list[str]:
    cells = [_clean_cell(c) for c in raw_header]
    # trailing blanks only pad the header out to wider data rows
    while cells and cells[-1] == "":
        cells.pop()
    if not cells:
        raise NoHeadersError("No headers found in the sheet")
    headers = [str(c).strip() or f"Column_{i + 1}" for i, c in enumerate(cells)]
    seen: set[str] = set()
    duplicates: list[str] = []
    for h in headers:
        if h in seen and h not in duplicates:
            duplicates.append(h)
        seen.add(h)
    if duplicates:
        raise DuplicateHeadersError(f"Duplicate column headers found: {', '.join(duplicates)}")
    return headers


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    options: ReadOptions | None = None,
) -> tuple[list[str], list[dict[str, Any]], list[int], list[str]]:
    """Turn a raw sheet DataFrame into (headers, rows, row numbers, warnings)."""
    options = options or ReadOptions()
    if df.shape[0] <= options.header_row:
        raise NoHeadersError(f"No data found in sheet '{sheet_name}'")

    headers = _build_headers(df.iloc[options.header_row].tolist())
    date_columns = {h for h in headers if DATE_HEADER_RE.search(h)}
    width = len(headers)
    warnings: list[str] = []

    rows: list[dict[str, Any]] = []
    row_numbers: list[int] = []
    for offset, raw in enumerate(df.iloc[options.header_row + 1:].itertuples(index=False)):
        values = list(raw)[:width]
        values += [None] * (width - len(values))
        row = {h: _clean_cell(v, h in date_columns) for h, v in zip(headers, values, strict=True)}
        if options.skip_empty_rows and all(v == "" for v in row.values()):
            continue
        rows.append(row)
        row_numbers.append(options.header_row + offset + 2)

    if options.max_rows is not None and len(rows) > options.max_rows:
        skipped = len(rows) - options.max_rows
        warnings.append(f"Limited to first {options.max_rows} rows. {skipped} rows skipped.")
        rows = rows[: options.max_rows]
        row_numbers = row_numbers[: options.max_rows]

    if not rows:
        raise NoRowsError(f"No data rows found in sheet '{sheet_name}'")

    if options.skip_empty_columns:
        kept = [h for h in headers if any(r[h] != "" for r in rows)]
        if len(kept) != len(headers):
            warnings.append(f"Removed {len(headers) - len(kept)} empty columns.")
            rows = [{h: r[h] for h in kept} for r in rows]
            headers = kept

    return headers, rows, row_numbers, warnings


def read_table(
    buffer: bytes,
    file_name: str,
    file_type: str | None = None,
    options: ReadOptions | None = None,
) -> TabularData:
    """Read one sheet of a CSV/workbook buffer into TabularData.

    Parameters
    ----------
    buffer: raw file content
    file_name: source name (used for type detection and metadata)
    file_type: "csv" / "xlsx" / "xls" or a mime type; detected from the name when None
    options: sheet selection, header offset, row cap and skipping flags
    """
    options = options or ReadOptions()
    resolved = file_type if file_type in ("csv", "xlsx", "xls") else detect_file_type(file_name, file_type)
    sheet, df, warnings = read_raw_sheet(buffer, resolved, options)
    headers, rows, row_numbers, sheet_warnings = normalize_sheet(df, sheet, options)
    warnings.extend(sheet_warnings)
    for w in warnings:
        logger.debug(f"reader: {file_name}: {w}")
    return TabularData(
        headers=headers,
        rows=rows,
        metadata=TabularMetadata(
            file_name=file_name,
            sheet_name=sheet,
            total_rows=int(df.shape[0]),
            total_columns=int(df.shape[1]),
            file_type=resolved,
        ),
        warnings=warnings,
        row_numbers=row_numbers,
    )


def preview_table(buffer: bytes, file_name: str, file_type: str | None = None, max_rows: int = 5) -> TabularData:
    """First ``max_rows`` non-empty rows of the first sheet."""
    return read_table(buffer, file_name, file_type, ReadOptions(max_rows=max_rows, skip_empty_rows=True))
