from __future__ import annotations

from dataclasses import dataclass, field

from .tabular import ReadOptions

"""Config dataclasses for the result analysis tool.

Separate from the loader in resultease/config/loader.py; every field carries
the default used when the YAML omits it.
"""

__all__ = [
    "DEFAULT_MAX_BYTES",
    "ReaderConfig",
    "AnalysisConfig",
    "MappingConfig",
    "AppConfig",
]

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class ReaderConfig:
    """Sheet selection and the size guards applied before reading."""
    sheet_index: int | None = 0
    sheet_name: str | None = None
    header_row: int = 0
    max_rows: int | None = None
    max_bytes: int = DEFAULT_MAX_BYTES
    skip_empty_rows: bool = True
    skip_empty_columns: bool = False

    def read_options(self) -> ReadOptions:
        return ReadOptions(
            # a sheet name wins over the index
            sheet_index=None if self.sheet_name is not None else self.sheet_index,
            sheet_name=self.sheet_name,
            header_row=self.header_row,
            max_rows=self.max_rows,
            skip_empty_rows=self.skip_empty_rows,
            skip_empty_columns=self.skip_empty_columns,
        )


@dataclass(frozen=True)
class AnalysisConfig:
    pass_threshold: float = 40.0
    excellence_threshold: float = 85.0
    min_failures: int = 2
    trend_threshold: float = 5.0
    distribution_ranges: tuple[float, ...] = (0, 40, 60, 75, 90, 100)


@dataclass(frozen=True)
class MappingConfig:
    """Caller decisions applied on top of the heuristic mapping.

    ``overrides`` maps a source header to a target field, ``"subject"``, or
    null to leave the header unmapped.
    """
    overrides: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    reader: ReaderConfig = field(default_factory=ReaderConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
