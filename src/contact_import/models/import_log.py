from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Import log (audit trail) models.

One ImportLogEntry exists per (file, sheet) processing attempt. The lifecycle is
pending → (complete | failed); the terminal transition happens exactly once.
"""

__all__ = [
    "LogStatus",
    "ImportLogEntry",
    "FILE_LEVEL_SHEET",
]

# ファイル単位エラー (ブックが開けない等) の sheet 名プレースホルダ
FILE_LEVEL_SHEET = "<FILE_LEVEL>"


class LogStatus(Enum):
    """Status of an import_logs row.

    - PENDING: sheet processing started, not yet finalized
    - COMPLETE: sheet finished normally (row-level failures allowed)
    - FAILED: sheet rejected or aborted
    """
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not LogStatus.PENDING


@dataclass(frozen=True)
class ImportLogEntry:
    id: int
    file_name: str
    sheet_name: str
    start_time: datetime
    status: LogStatus = LogStatus.PENDING
    end_time: datetime | None = None
    total_rows: int = 0
    inserted_rows: int = 0
    failed_rows: int = 0
    total_seconds: float | None = None
