from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2

from contact_import.cli.__main__ import main as cli_main
from contact_import.services.orchestrator import ImportContext


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_missing_source_directory_is_fatal(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "import.yml").write_text("source_directory: ./nowhere\n", encoding="utf-8")
    code = cli_main(["--dry-run"])
    assert code == 1
    assert "ERROR input: Directory not found" in capsys.readouterr().out


def test_no_paths_and_no_source_directory(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "import.yml").write_text("batch_size: 10\n", encoding="utf-8")
    assert cli_main(["--dry-run"]) == 1
    assert "ERROR input:" in capsys.readouterr().out


def test_dry_run_success(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    code = cli_main(["--dry-run"])
    out = capsys.readouterr().out
    assert code == 0
    assert "mode=dry-run" in out
    assert "SUMMARY files=2/2 success=2 failed=0 sheets_ok=2 sheets_failed=0 rows=6 inserted=6" in out


def test_explicit_missing_file_is_partial_failure(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    code = cli_main(["--dry-run", str(dummy_excel_files[0]), "data/ghost.xlsx"])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=2/2 success=1 failed=1" in out


def test_report_written(temp_workdir: Path, write_config: Path, dummy_excel_files):
    report = temp_workdir / "out" / "report.json"
    assert cli_main(["--dry-run", "--report", str(report)]) == 0
    data = json.loads(report.read_text(encoding="utf-8"))
    assert [f["file"] for f in data] == ["north.xlsx", "south.xlsx"]
    assert data[0]["sheets"][0]["stats"]["inserted_rows"] == 3


def test_inspect_data(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: north.xlsx" in out
    assert "SHEET: Contacts" in out
    assert "SUMMARY" not in out


def test_debug_flag(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    assert cli_main(["--dry-run", "--debug"]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out


def test_live_mode_connection_failure_is_fatal(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    with patch(
        "contact_import.cli.__main__.ConnectionProvider.from_config",
        side_effect=psycopg2.OperationalError("could not connect to server"),
    ):
        code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR database: could not connect to server" in out
    # dry-run へのフォールバックはしない
    assert "SUMMARY" not in out


def test_live_mode_uses_database_context(temp_workdir: Path, write_config: Path, dummy_excel_files, capsys):
    provider = MagicMock()
    provider.__enter__.return_value = provider
    provider.__exit__.return_value = False
    with patch("contact_import.cli.__main__.ConnectionProvider.from_config", return_value=provider):
        with patch(
            "contact_import.cli.__main__.ImportContext.for_database",
            side_effect=lambda cfg, prov: ImportContext.dry_run(cfg),
        ) as for_db:
            code = cli_main([])
    assert code == 0
    assert for_db.call_args.args[1] is provider
    provider.__exit__.assert_called_once()
    assert "mode=live" in capsys.readouterr().out


def test_env_file_overrides_environment(temp_workdir: Path, write_config: Path, monkeypatch):
    monkeypatch.setenv("PGHOST", "from-shell")
    (temp_workdir / ".env").write_text("PGHOST=from-dotenv\n", encoding="utf-8")
    (temp_workdir / "data").mkdir(exist_ok=True)
    assert cli_main(["--dry-run"]) == 0
    import os

    assert os.environ["PGHOST"] == "from-dotenv"
