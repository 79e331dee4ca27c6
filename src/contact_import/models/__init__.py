"""Domain models for the spreadsheet -> PostgreSQL contact import tool."""

from .config_models import ContactDefaults, DatabaseConfig, DuplicateCheck, ImportConfig
from .contact import FailureReason, FailureRecord, NormalizedContact
from .import_log import ImportLogEntry, LogStatus
from .processing_result import FileResult, RunResult, SheetResult, SheetStats

__all__ = [
    # Configuration models
    "ContactDefaults",
    "DatabaseConfig",
    "DuplicateCheck",
    "ImportConfig",
    # Row models
    "FailureReason",
    "FailureRecord",
    "NormalizedContact",
    # Audit log
    "ImportLogEntry",
    "LogStatus",
    # Results
    "FileResult",
    "RunResult",
    "SheetResult",
    "SheetStats",
]
