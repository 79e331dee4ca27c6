from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Terminal progress for an import run (tqdm, TTY only).

- ProgressTracker: one bar over the input workbooks, postfix shows the running
  totals ``ok=.. failed=.. rows=..`` (files ok / files failed / rows inserted)
- SheetProgressIndicator: one line per sheet of the workbook being imported

Nothing is drawn when stdout is not a TTY (CI, redirected output); the
counters are still kept.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "SheetProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Per-file progress bar with running import totals.

    start_file / finish_file may be called from several worker threads.
    """

    def __init__(self, total_files: int, *, description: str = "Importing files") -> None:
        self.total_files = total_files
        self.description = description
        self.files_started = 0
        self.files_ok = 0
        self.files_failed = 0
        self.rows_inserted = 0
        self._lock = threading.Lock()

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        with self._lock:
            self.files_started += 1
            if self.pbar is not None:
                self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True, inserted_rows: int = 0) -> None:
        with self._lock:
            if success:
                self.files_ok += 1
            else:
                self.files_failed += 1
            self.rows_inserted += inserted_rows
            if self.pbar is not None:
                self.pbar.update(1)
                self.pbar.set_description(self.description)
                self.pbar.set_postfix(ok=self.files_ok, failed=self.files_failed, rows=self.rows_inserted)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class SheetProgressIndicator:
    """``  <file> sheet N: <name> - R rows ✓`` lines, written through tqdm.write
    so they do not tear the file bar.

    The line is written whole when the sheet finishes; workers importing other
    files in parallel never interleave inside it.
    """

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        self.current_sheet = 0
        self._sheet_name = ""
        self.enabled = is_tty_enabled()

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        self._sheet_name = sheet_name

    def finish_sheet(self, success: bool = True, rows_inserted: int = 0) -> None:
        if not self.enabled:
            return
        mark = "✓" if success else "✗"
        tail = f" - {rows_inserted} rows {mark}" if rows_inserted > 0 else f" {mark}"
        tqdm.write(f"  {self.file_name} sheet {self.current_sheet}: {self._sheet_name}{tail}")
