from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..db.batch_insert import BatchMetrics, InsertFailedError
from ..db.connection import ConnectionProvider
from ..db.contacts_store import ContactStore, DuplicateLookupError, PostgresContactStore
from ..db.import_log import PostgresRunLogger
from ..db.memory import MemoryContactStore
from ..excel.reader import SheetData, UnreadableFileError, Workbook, open_workbook
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import WORKER_THREAD_PREFIX
from ..models.config_models import ImportConfig
from ..models.contact import FailureRecord
from ..models.error_record import SHEET_LEVEL_ROW
from ..models.import_log import FILE_LEVEL_SHEET, LogStatus
from ..models.processing_result import (
    EMPTY_STATS,
    BatchTimings,
    FileResult,
    RunResult,
    SheetResult,
    SheetStats,
)
from .batcher import Batcher
from .normalizer import normalize_row
from .progress import ProgressTracker, SheetProgressIndicator
from .run_logger import MemoryRunLogger, RunLogError, RunLogger
from .validator import RowValidator, missing_required_columns

"""Import orchestration: workbook → sheets → rows → batches → store.

Per sheet: Start → (EmptySheet | MissingColumns | Processing) → Finished.
The run logger's begin/finish bracket every sheet; finish runs exactly once on
every exit path. A failing sheet never stops its siblings, a failing file
never stops the next file.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal error that prevents a run from starting (bad input directory...)."""


@dataclass
class ImportContext:
    """Collaborators shared by every file / sheet of one run."""
    config: ImportConfig
    store: ContactStore
    run_logger: RunLogger
    error_log: ErrorLogBuffer = field(default_factory=ErrorLogBuffer)

    @classmethod
    def for_database(cls, config: ImportConfig, provider: ConnectionProvider) -> ImportContext:
        return cls(
            config=config,
            store=PostgresContactStore(provider, config.contacts_table, config.contact_defaults),
            run_logger=PostgresRunLogger(provider, config.log_table),
            error_log=ErrorLogBuffer(config.error_log_dir),
        )

    @classmethod
    def dry_run(cls, config: ImportConfig) -> ImportContext:
        return cls(
            config=config,
            store=MemoryContactStore(),
            run_logger=MemoryRunLogger(),
            error_log=ErrorLogBuffer(config.error_log_dir),
        )


def scan_excel_files(directory: Path) -> list[Path]:
    """List .xlsx files in ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".xlsx")
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


class _SheetRun:
    """Mutable counters for one sheet while it is being processed."""

    def __init__(self) -> None:
        self.total_rows = 0
        self.inserted_rows = 0
        self.failures: list[FailureRecord] = []
        self.batch_timings = BatchTimings()
        self.error: str | None = None
        self.error_type: str | None = None
        # EmptySheet / MissingColumns / 読込失敗: 行は一切処理しない
        self.rejected = False

    def reject(self, error_type: str, message: str) -> None:
        self.rejected = True
        self.fail(error_type, message)

    def fail(self, error_type: str, message: str) -> None:
        self.error_type = error_type
        self.error = message

    def on_batch(self, metrics: BatchMetrics) -> None:
        self.batch_timings.observe(metrics.elapsed_seconds)

    @property
    def status(self) -> LogStatus:
        return LogStatus.COMPLETE if self.error is None else LogStatus.FAILED

    def stats(self) -> SheetStats:
        if self.rejected:
            return EMPTY_STATS
        aborted = 0
        if self.error is not None:
            aborted = self.total_rows - self.inserted_rows - len(self.failures)
        return SheetStats(
            total_rows=self.total_rows,
            inserted_rows=self.inserted_rows,
            failed_details=list(self.failures),
            aborted_rows=aborted,
        )


def _flush(batcher: Batcher, context: ImportContext, run: _SheetRun) -> None:
    batch = batcher.drain()
    run.inserted_rows += context.store.insert_batch(batch, metrics_callback=run.on_batch)


def _run_pipeline(sheet: SheetData, file_name: str, context: ImportContext, run: _SheetRun) -> None:
    if sheet.is_empty:
        run.reject("EMPTY_SHEET", "Empty sheet")
        return
    missing = missing_required_columns(sheet.columns)
    if missing:
        run.reject("MISSING_REQUIRED_COLUMNS", f"Missing required columns: {', '.join(missing)}")
        return

    run.total_rows = len(sheet.rows)
    validator = RowValidator(context.config.duplicate_check, context.store)
    batcher = Batcher(context.config.batch_size)
    try:
        for row_number, raw in enumerate(sheet.rows, start=1):
            contact = normalize_row(raw)
            failure = validator.validate(row_number, contact, batcher.pending_phones)
            if failure is not None:
                run.failures.append(failure)
                context.error_log.record_failure(file_name, sheet.sheet_name, failure)
                continue
            if batcher.add(contact):
                _flush(batcher, context, run)
        if batcher:
            _flush(batcher, context, run)
    except InsertFailedError as e:
        run.fail("INSERT_FAILED", f"Insert failed: {e}")
    except DuplicateLookupError as e:
        run.fail("DUPLICATE_LOOKUP_FAILED", str(e))


def _finish_log(
    context: ImportContext, log_id: int, run: _SheetRun, elapsed: float, file_name: str, sheet_name: str
) -> None:
    try:
        context.run_logger.finish(log_id, run.stats(), run.status, elapsed)
    except RunLogError as e:
        logger.error("file=%s sheet=%s %s", file_name, sheet_name, e)
        context.error_log.record(file_name, sheet_name, SHEET_LEVEL_ROW, "RUN_LOG_FAILED", str(e))


def _process_sheet(workbook: Workbook, sheet_name: str, file_name: str, context: ImportContext) -> SheetResult:
    started = time.perf_counter()
    try:
        log_id = context.run_logger.begin(file_name, sheet_name)
    except RunLogError as e:
        # 監査ログが作れないシートは処理しない
        logger.error("file=%s sheet=%s %s", file_name, sheet_name, e)
        context.error_log.record(file_name, sheet_name, SHEET_LEVEL_ROW, "RUN_LOG_FAILED", str(e))
        return SheetResult(sheet=sheet_name, success=False, log_id=None, error=str(e))

    run = _SheetRun()
    done = False
    try:
        try:
            sheet = workbook.read_sheet(sheet_name)
        except UnreadableFileError as e:
            run.reject("UNREADABLE_SHEET", str(e))
        else:
            _run_pipeline(sheet, file_name, context, run)
        done = True
    except Exception as e:
        logger.exception("file=%s sheet=%s unexpected error", file_name, sheet_name)
        run.fail("UNEXPECTED_ERROR", f"Unexpected error: {e}")
        done = True
    finally:
        if not done:
            # KeyboardInterrupt 等: pending のまま残さない
            run.fail("INTERRUPTED", "processing interrupted")
        elapsed = time.perf_counter() - started
        _finish_log(context, log_id, run, elapsed, file_name, sheet_name)

    stats = run.stats()
    if run.error is not None:
        context.error_log.record(
            file_name, sheet_name, SHEET_LEVEL_ROW, run.error_type or "SHEET_FAILED", run.error
        )
        logger.warning(
            "file=%s sheet=%s status=failed error=%s inserted=%d elapsed_sec=%.3f",
            file_name, sheet_name, run.error, stats.inserted_rows, elapsed,
        )
    else:
        logger.info(
            "file=%s sheet=%s status=complete total=%d inserted=%d failed=%d elapsed_sec=%.3f",
            file_name, sheet_name, stats.total_rows, stats.inserted_rows, stats.failed_rows, elapsed,
        )

    return SheetResult(
        sheet=sheet_name,
        success=run.error is None,
        log_id=log_id,
        error=run.error,
        stats=None if run.rejected else stats,
        elapsed_seconds=elapsed,
        total_batches=len(run.batch_timings),
        avg_batch_seconds=run.batch_timings.average,
        p95_batch_seconds=run.batch_timings.p95,
    )


def _record_file_failure(file_name: str, error: Exception, context: ImportContext, elapsed: float) -> None:
    context.error_log.record(file_name, FILE_LEVEL_SHEET, SHEET_LEVEL_ROW, "UNREADABLE_FILE", str(error))
    try:
        log_id = context.run_logger.begin(file_name, FILE_LEVEL_SHEET)
        context.run_logger.finish(log_id, EMPTY_STATS, LogStatus.FAILED, elapsed)
    except RunLogError as e:
        logger.error("file=%s %s", file_name, e)
        context.error_log.record(file_name, FILE_LEVEL_SHEET, SHEET_LEVEL_ROW, "RUN_LOG_FAILED", str(e))


def import_file(path: Path, file_name: str | None, context: ImportContext) -> list[SheetResult]:
    """Import every sheet of one workbook, in workbook order.

    Raises:
        UnreadableFileError: the workbook could not be opened (no sheet was
            processed; a failed file-level log entry has been recorded)
    """
    path = Path(path)
    file_name = file_name or path.name
    started = time.perf_counter()
    try:
        workbook = open_workbook(path, keep_na_strings=context.config.keep_na_strings)
    except UnreadableFileError as e:
        logger.error("file=%s unreadable: %s", file_name, e)
        _record_file_failure(file_name, e, context, time.perf_counter() - started)
        raise

    results: list[SheetResult] = []
    with workbook:
        indicator = SheetProgressIndicator(file_name)
        for sheet_name in workbook.sheet_names:
            indicator.start_sheet(sheet_name)
            result = _process_sheet(workbook, sheet_name, file_name, context)
            indicator.finish_sheet(success=result.success, rows_inserted=result.inserted_rows)
            results.append(result)
    return results


def _import_one(path: Path, context: ImportContext, progress: ProgressTracker) -> FileResult:
    progress.start_file(path)
    started = time.perf_counter()
    try:
        sheets = import_file(path, path.name, context)
        result = FileResult(file=path.name, sheets=sheets, elapsed_seconds=time.perf_counter() - started)
    except UnreadableFileError as e:
        result = FileResult(file=path.name, sheets=[], error=str(e), elapsed_seconds=time.perf_counter() - started)
    except Exception as e:
        logger.exception("file=%s unexpected error", path.name)
        result = FileResult(
            file=path.name, sheets=[], error=f"Unexpected error: {e}", elapsed_seconds=time.perf_counter() - started
        )
    progress.finish_file(success=result.success, inserted_rows=result.inserted_rows)
    return result


def import_files(paths: Iterable[Path | str], context: ImportContext) -> RunResult:
    """Import several workbooks; results keep the input order.

    With ``config.workers > 1`` files run on a bounded thread pool. Sheets of a
    single file are always processed sequentially.
    """
    file_paths = [Path(p) for p in paths]
    start_time = datetime.now(UTC)
    started = time.perf_counter()
    workers = max(1, min(context.config.workers, len(file_paths)))

    with ProgressTracker(len(file_paths)) as progress:
        if workers == 1:
            files = [_import_one(p, context, progress) for p in file_paths]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=WORKER_THREAD_PREFIX) as pool:
                files = list(pool.map(lambda p: _import_one(p, context, progress), file_paths))

    try:
        error_log_path = context.error_log.flush()
        if error_log_path is not None:
            logger.info("error log written: %s", error_log_path)
    except OSError as e:
        logger.warning("failed to write error log: %s", e)

    end_time = datetime.now(UTC)
    return RunResult(
        files=files,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=time.perf_counter() - started,
    )
