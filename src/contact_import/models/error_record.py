from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .contact import FailureRecord

"""One line of the JSON Lines error log.

Rejected rows carry their 1-based data row number and the FailureReason label
(MISSING_NAME / MISSING_PHONE / DUPLICATE_PHONE). Sheet- and file-level
failures (EMPTY_SHEET, INSERT_FAILED, UNREADABLE_FILE, ...) use
``row = SHEET_LEVEL_ROW``.
"""

__all__ = [
    "SHEET_LEVEL_ROW",
    "ErrorRecord",
]

SHEET_LEVEL_ROW = -1


def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str  # ISO8601 UTC, 'Z' suffix
    file: str
    sheet: str  # ファイル単位エラーは <FILE_LEVEL>
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @classmethod
    def create(cls, file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        return cls(
            timestamp=_utc_timestamp(),
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    @classmethod
    def for_row_failure(cls, file: str, sheet: str, failure: FailureRecord) -> ErrorRecord:
        return cls.create(file, sheet, failure.row_number, failure.reason.error_type, failure.reason.value)

    def to_json_line(self) -> str:
        """Serialize with exactly the six dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
