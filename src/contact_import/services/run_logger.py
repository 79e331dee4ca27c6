from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from ..models.import_log import ImportLogEntry, LogStatus
from ..models.processing_result import SheetStats

"""Run logger: the sheet lifecycle observer.

The orchestrator calls ``begin`` before a sheet's rows are touched and
``finish`` exactly once afterwards, whatever the outcome. Implementations:
MemoryRunLogger (dry run / tests) here, PostgresRunLogger in db/import_log.py.
"""

__all__ = [
    "RunLogError",
    "RunLogger",
    "MemoryRunLogger",
]


class RunLogError(Exception):
    """begin/finish could not be recorded, or finish was called twice."""


class RunLogger(Protocol):
    def begin(self, file_name: str, sheet_name: str) -> int:
        """Create a pending entry stamped with the current time; return its id."""
        ...

    def finish(self, log_id: int, stats: SheetStats, status: LogStatus, elapsed_seconds: float) -> None:
        """Finalize the entry (end time, counts, terminal status, elapsed)."""
        ...


class MemoryRunLogger:
    """In-process import log. Thread safe."""

    def __init__(self) -> None:
        self._entries: dict[int, ImportLogEntry] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def begin(self, file_name: str, sheet_name: str) -> int:
        with self._lock:
            log_id = next(self._ids)
            self._entries[log_id] = ImportLogEntry(
                id=log_id,
                file_name=file_name,
                sheet_name=sheet_name,
                start_time=datetime.now(UTC),
            )
        return log_id

    def finish(self, log_id: int, stats: SheetStats, status: LogStatus, elapsed_seconds: float) -> None:
        if not status.is_terminal:
            raise RunLogError(f"finish requires a terminal status, got {status.value}")
        with self._lock:
            entry = self._entries.get(log_id)
            if entry is None:
                raise RunLogError(f"unknown import log id {log_id}")
            if entry.status.is_terminal:
                raise RunLogError(f"import log {log_id} already finalized as {entry.status.value}")
            self._entries[log_id] = replace(
                entry,
                status=status,
                end_time=datetime.now(UTC),
                total_rows=stats.total_rows,
                inserted_rows=stats.inserted_rows,
                failed_rows=stats.failed_rows,
                total_seconds=round(elapsed_seconds, 3),
            )

    @property
    def entries(self) -> list[ImportLogEntry]:
        with self._lock:
            return [self._entries[k] for k in sorted(self._entries)]

    def get(self, log_id: int) -> ImportLogEntry:
        return self._entries[log_id]
