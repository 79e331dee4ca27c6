from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

from ..models.contact import FailureRecord
from ..models.error_record import ErrorRecord

"""Error log generation & buffering module.

- JSON Lines 固定スキーマ (追加キー禁止)
- 起動ごとに `<log_dir>/errors-YYYYMMDD-HHMMSS.log` (UTC) を生成 (必要時のみ)
- 実行中はバッファし、run 終了時に一括で書き出す
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

DEFAULT_LOGS_DIR = Path("./logs")


def _log_file_name(now: datetime) -> str:
    return f"errors-{now:%Y%m%d-%H%M%S}.log"


class ErrorLogBuffer:
    """Collects ErrorRecords during a run and writes them as JSON Lines.

    The file name is fixed by the first flush (or the first ``file_path``
    access), so later flushes of the same run append to the same file. Nothing
    is created when no error was recorded.
    """

    def __init__(self, log_dir: Path | str = DEFAULT_LOGS_DIR) -> None:
        self.log_dir = Path(log_dir)
        self._pending: list[ErrorRecord] = []
        self._path: Path | None = None
        # ワーカースレッドからも追記される
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        if self._path is None:
            self._path = self.log_dir / _log_file_name(datetime.now(UTC))
        return self._path

    def append(self, record: ErrorRecord) -> None:
        with self._lock:
            self._pending.append(record)

    def record(self, file: str, sheet: str, row: int, error_type: str, message: str) -> None:
        self.append(ErrorRecord.create(file, sheet, row, error_type, message))

    def record_failure(self, file: str, sheet: str, failure: FailureRecord) -> None:
        self.append(ErrorRecord.for_row_failure(file, sheet, failure))

    @property
    def records(self) -> list[ErrorRecord]:
        with self._lock:
            return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> Path | None:
        """Append pending records to the run's log file and return its path.

        Returns None (and touches nothing on disk) when nothing is pending.
        """
        with self._lock:
            if not self._pending:
                return None
            target = self.file_path
            target.parent.mkdir(parents=True, exist_ok=True)
            lines = [rec.to_json_line() + "\n" for rec in self._pending]
            with target.open("a", encoding="utf-8") as out:
                out.writelines(lines)
            self._pending = []
        return target
