from __future__ import annotations

from ..models.import_log import LogStatus
from ..models.processing_result import SheetStats
from ..services.run_logger import RunLogError
from .connection import ConnectionProvider

"""import_logs persistence (PostgreSQL RunLogger).

Expected table (schema setup is out of scope for this tool)::

    import_logs(id serial, file_name text, sheet_name text,
                start_time timestamptz, end_time timestamptz, status text,
                total_rows int, inserted_rows int, failed_rows int,
                total_seconds numeric)
"""

__all__ = [
    "PostgresRunLogger",
]


class PostgresRunLogger:
    def __init__(self, provider: ConnectionProvider, table: str = "import_logs") -> None:
        self._provider = provider
        self.table = table

    def begin(self, file_name: str, sheet_name: str) -> int:
        try:
            with self._provider.transaction() as cur:
                cur.execute(
                    f"INSERT INTO {self.table} (file_name, sheet_name, start_time, status) "
                    "VALUES (%s, %s, NOW(), %s) RETURNING id",
                    (file_name, sheet_name, LogStatus.PENDING.value),
                )
                row = cur.fetchone()
        except Exception as e:
            raise RunLogError(f"failed to create import log for {file_name}/{sheet_name}: {e}") from e
        if row is None:
            raise RunLogError(f"import log insert returned no id for {file_name}/{sheet_name}")
        return int(row[0])

    def finish(self, log_id: int, stats: SheetStats, status: LogStatus, elapsed_seconds: float) -> None:
        if not status.is_terminal:
            raise RunLogError(f"finish requires a terminal status, got {status.value}")
        try:
            with self._provider.transaction() as cur:
                # status='pending' 条件で二重確定を防ぐ
                cur.execute(
                    f"UPDATE {self.table} SET end_time = NOW(), total_rows = %s, inserted_rows = %s, "
                    "failed_rows = %s, status = %s, total_seconds = %s "
                    "WHERE id = %s AND status = %s",
                    (
                        stats.total_rows,
                        stats.inserted_rows,
                        stats.failed_rows,
                        status.value,
                        round(elapsed_seconds, 3),
                        log_id,
                        LogStatus.PENDING.value,
                    ),
                )
                updated = cur.rowcount
        except Exception as e:
            raise RunLogError(f"failed to finalize import log {log_id}: {e}") from e
        if updated != 1:
            raise RunLogError(f"import log {log_id} not found or already finalized")
