from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .contact import FailureRecord

"""Processing result models for the contact import pipeline.

Results nest run → file → sheet. Sheet results carry the row counters and the
per-row failure details; file and run results only aggregate.

Batch timing statistics (count / average / p95) are accumulated per sheet via
BatchTimings fed from the bulk inserter's metrics callback.
"""

__all__ = [
    "SheetStats",
    "SheetResult",
    "FileResult",
    "RunResult",
    "BatchTimings",
]


@dataclass(frozen=True)
class SheetStats:
    """Row counters for one sheet.

    ``aborted_rows`` counts rows that were never committed because a batch
    insert failed (the failed batch itself plus every row after it), so that
    ``inserted_rows + failed_rows == total_rows`` holds on every exit path.
    """
    total_rows: int
    inserted_rows: int
    failed_details: list[FailureRecord] = field(default_factory=list)
    aborted_rows: int = 0

    @property
    def failed_rows(self) -> int:
        return len(self.failed_details) + self.aborted_rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "inserted_rows": self.inserted_rows,
            "failed_rows": self.failed_rows,
            "aborted_rows": self.aborted_rows,
            "failed_details": [f.to_dict() for f in self.failed_details],
        }


EMPTY_STATS = SheetStats(total_rows=0, inserted_rows=0)


@dataclass(frozen=True)
class SheetResult:
    """Outcome of one sheet (mirrors the import_logs row it is paired with)."""
    sheet: str
    success: bool
    log_id: int | None
    error: str | None = None
    stats: SheetStats | None = None
    elapsed_seconds: float = 0.0
    # バッチ計測 (BatchTimings 由来)
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def inserted_rows(self) -> int:
        return self.stats.inserted_rows if self.stats else 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sheet": self.sheet, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        data["log_id"] = self.log_id
        return data


@dataclass(frozen=True)
class FileResult:
    file: str
    sheets: list[SheetResult]
    error: str | None = None  # ファイル単位の致命的エラー (UnreadableFile)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and all(s.success for s in self.sheets)

    @property
    def inserted_rows(self) -> int:
        return sum(s.inserted_rows for s in self.sheets)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"file": self.file, "sheets": [s.to_dict() for s in self.sheets]}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class RunResult:
    """Aggregated result of one import run (SUMMARY line source)."""
    files: list[FileResult]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float

    @property
    def success_files(self) -> int:
        return sum(1 for f in self.files if f.success)

    @property
    def failed_files(self) -> int:
        return len(self.files) - self.success_files

    @property
    def sheets_ok(self) -> int:
        return sum(1 for f in self.files for s in f.sheets if s.success)

    @property
    def sheets_failed(self) -> int:
        return sum(1 for f in self.files for s in f.sheets if not s.success)

    @property
    def total_rows(self) -> int:
        return sum(s.stats.total_rows for f in self.files for s in f.sheets if s.stats)

    @property
    def inserted_rows(self) -> int:
        return sum(f.inserted_rows for f in self.files)

    @property
    def failed_rows(self) -> int:
        return sum(s.stats.failed_rows for f in self.files for s in f.sheets if s.stats)

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.inserted_rows / self.elapsed_seconds


class BatchTimings:
    """execute_values durations of one sheet, one sample per batch."""

    def __init__(self) -> None:
        self._samples: list[float] = []

    def observe(self, elapsed_seconds: float) -> None:
        self._samples.append(elapsed_seconds)

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def average(self) -> float:
        return statistics.fmean(self._samples) if self._samples else 0.0

    @property
    def p95(self) -> float:
        if len(self._samples) < 2:
            return self._samples[0] if self._samples else 0.0
        # 百分位の 95 番目 (0 始まりで 94)
        return statistics.quantiles(self._samples, n=100, method="inclusive")[94]
