"""Ingestion: tabular reading, column mapping and row transformation."""

from .column_mapper import accept_suggestion, apply_overrides, auto_map_columns, build_mapping, validate_mappings
from .reader import (
    DuplicateHeadersError,
    FileTooLargeError,
    NoHeadersError,
    NoRowsError,
    SheetNotFoundError,
    StructuralError,
    UnsupportedFormatError,
    detect_file_type,
    list_sheet_names,
    preview_table,
    read_table,
)
from .transformer import transform_rows, transform_table

__all__ = [
    "DuplicateHeadersError",
    "FileTooLargeError",
    "NoHeadersError",
    "NoRowsError",
    "SheetNotFoundError",
    "StructuralError",
    "UnsupportedFormatError",
    "accept_suggestion",
    "apply_overrides",
    "auto_map_columns",
    "build_mapping",
    "detect_file_type",
    "list_sheet_names",
    "preview_table",
    "read_table",
    "transform_rows",
    "transform_table",
]
