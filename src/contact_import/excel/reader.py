from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import pandas._libs.parsers as parsers

"""Workbook reader.

The first row of every sheet is the header; following rows are data rows keyed
by header name. pandas (openpyxl engine) does the cell decoding.

Sheets are parsed lazily: opening a workbook only reads the sheet list, and each
sheet's rows are materialized when the iterator reaches it.
"""

__all__ = [
    "UnreadableFileError",
    "SheetData",
    "Workbook",
    "open_workbook",
]


class UnreadableFileError(Exception):
    """Raised when the workbook is missing, corrupt, or not a spreadsheet."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # ヘッダ名 → セル値 (空セルは None)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def _na_options(keep_na_strings: Iterable[str] | None) -> tuple[list[str] | None, bool]:
    """Return (na_values, keep_default_na) for pandas parse.

    keep_na_strings を既定の NA 文字列集合から除外する (例: 'NA' を文字列として残す)。
    """
    if not keep_na_strings:
        return None, True
    custom_na = parsers.STR_NA_VALUES - set(keep_na_strings)
    return sorted(custom_na), False


def _rows_from_frame(df: pd.DataFrame) -> tuple[list[str], list[dict[str, Any]]]:
    columns = [str(c) for c in df.columns]
    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        values = [None if pd.isna(v) else v for v in raw]
        # 全セル空の行はデータ行として数えない
        if all(v is None for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))
    return columns, rows


class Workbook:
    """An opened workbook: a lazy, single-pass iterator of SheetData.

    Use as a context manager so the underlying file handle is released::

        with open_workbook(path) as wb:
            for sheet in wb:
                ...
    """

    def __init__(self, path: Path, keep_na_strings: Iterable[str] | None = None) -> None:
        self.path = path
        self._na_values, self._keep_default_na = _na_options(keep_na_strings)
        self._consumed = False
        try:
            self._xls = pd.ExcelFile(path)
        except Exception as e:
            raise UnreadableFileError(f"cannot open workbook {path.name}: {e}") from e

    @property
    def sheet_names(self) -> list[str]:
        return [str(n) for n in self._xls.sheet_names]

    def read_sheet(self, name: str) -> SheetData:
        try:
            # dtype=object: 電話番号などの数値セルを float 化させない
            df = self._xls.parse(
                name,
                header=0,
                dtype=object,
                na_values=self._na_values,
                keep_default_na=self._keep_default_na,
            )
        except Exception as e:
            raise UnreadableFileError(f"cannot read sheet '{name}' of {self.path.name}: {e}") from e
        columns, rows = _rows_from_frame(df)
        return SheetData(sheet_name=name, columns=columns, rows=rows)

    def __iter__(self) -> Iterator[SheetData]:
        if self._consumed:
            raise RuntimeError(f"sheets of {self.path.name} were already iterated")
        self._consumed = True
        return (self.read_sheet(name) for name in self.sheet_names)

    def close(self) -> None:
        self._xls.close()

    def __enter__(self) -> Workbook:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def open_workbook(path: Path, keep_na_strings: Iterable[str] | None = None) -> Workbook:
    """Open a workbook for sheet-by-sheet reading.

    Raises:
        UnreadableFileError: file missing, corrupt, or unsupported format
    """
    return Workbook(Path(path), keep_na_strings=keep_na_strings)
