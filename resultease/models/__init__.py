"""Pipeline data models shared by the reader, mapper, transformer and validator."""

from .config_models import AnalysisConfig, AppConfig, MappingConfig, ReaderConfig
from .issue_record import IssueRecord
from .mapping import ColumnMapping, FieldType, MappingCheck, MappingResult, MappingSuggestion
from .outcome import Failure, FailureKind, Outcome, Success
from .processing_result import BatchResult, FileStat
from .records import CandidateRecord, TransformResult
from .tabular import ReadOptions, TabularData, TabularMetadata
from .validation import (
    DuplicateGroup,
    QualityReport,
    RecordValidation,
    RuleOutcome,
    RuleViolation,
    Severity,
    StructureReport,
    ValidationReport,
    ValidationRule,
    ValidationSummary,
)

__all__ = [
    # Configuration
    "AnalysisConfig",
    "AppConfig",
    "MappingConfig",
    "ReaderConfig",
    # Ingestion
    "ReadOptions",
    "TabularData",
    "TabularMetadata",
    # Mapping
    "ColumnMapping",
    "FieldType",
    "MappingCheck",
    "MappingResult",
    "MappingSuggestion",
    # Records
    "CandidateRecord",
    "TransformResult",
    # Validation
    "DuplicateGroup",
    "QualityReport",
    "RecordValidation",
    "RuleOutcome",
    "RuleViolation",
    "Severity",
    "StructureReport",
    "ValidationReport",
    "ValidationRule",
    "ValidationSummary",
    # Outcomes and reporting
    "BatchResult",
    "Failure",
    "FailureKind",
    "FileStat",
    "IssueRecord",
    "Outcome",
    "Success",
]
