# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from contact_import.logging.init import reset_logging
from contact_import.models.config_models import DuplicateCheck, ImportConfig


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # .env / DB 接続系の環境変数がテストに漏れないようにする
        for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    # StreamHandler は作成時の sys.stdout を握るので capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
contacts_table: contacts
log_table: import_logs
batch_size: 1000
duplicate_check: lookup
error_log_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def import_config(temp_workdir: Path) -> ImportConfig:
    return ImportConfig(
        source_directory=str(temp_workdir / "data"),
        batch_size=1000,
        duplicate_check=DuplicateCheck.LOOKUP,
        error_log_dir=str(temp_workdir / "logs"),
    )


def make_workbook(path: Path, sheets: dict[str, Sequence[dict[str, Any]] | list[str]]) -> Path:
    """Write an .xlsx with the header in row 1.

    A sheet given as a list of strings is written header-only (no data rows).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            if rows and all(isinstance(r, str) for r in rows):
                df = pd.DataFrame(columns=list(rows))
            else:
                df = pd.DataFrame(list(rows))
            df.to_excel(writer, sheet_name=sheet_name, header=True, index=False)
    return path


def contact_rows(n: int, start: int = 0, **extra: Any) -> list[dict[str, Any]]:
    """n valid contact rows with distinct phones."""
    return [
        {"Name": f"Person {i}", "Phone": f"555{i:07d}", "Email": f"p{i}@example.com", **extra}
        for i in range(start, start + n)
    ]


@pytest.fixture()
def dummy_excel_files(temp_workdir: Path) -> list[Path]:
    files = []
    for name, start in (("north.xlsx", 0), ("south.xlsx", 100)):
        files.append(make_workbook(temp_workdir / "data" / name, {"Contacts": contact_rows(3, start)}))
    return files


@pytest.fixture()
def workbook_factory():
    return make_workbook


@pytest.fixture()
def rows_factory():
    return contact_rows
