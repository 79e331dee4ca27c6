from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from contact_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from contact_import.db.connection import ConnectionProvider
from contact_import.excel.reader import UnreadableFileError, open_workbook
from contact_import.logging.init import log_summary, set_debug, setup_logging
from contact_import.models.config_models import ImportConfig
from contact_import.services.orchestrator import (
    ImportContext,
    ProcessingError,
    import_files,
    scan_excel_files,
)
from contact_import.services.summary import render_summary_line

"""CLI entrypoint.

    python -m contact_import.cli [PATH ...] [--config config/import.yml]
                                 [--dry-run] [--debug] [--inspect-data]
                                 [--report results.json]

PATH may be a workbook or a directory (its *.xlsx files). Without PATH the
config's source_directory is scanned.

Exit codes: 0 every sheet of every file succeeded, 2 at least one sheet/file
failed, 1 fatal (config, input directory, database connection).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _read_dotenv(path: Path) -> None:
    # PG* / DATABASE_URL は .env の値を優先 (シェルの古い値を上書き)
    if path.is_file():
        load_dotenv(dotenv_path=path, override=True)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="contact-import", description="Spreadsheet -> PostgreSQL contact importer")
    p.add_argument("paths", nargs="*", type=Path, help="Workbooks or directories to import")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--dry-run", action="store_true", help="Run the pipeline without touching the database")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--report", type=Path, help="Write per-file / per-sheet results as JSON")
    return p.parse_args(argv)


def _collect_files(paths: list[Path], cfg: ImportConfig) -> list[Path]:
    if not paths:
        if not cfg.source_directory:
            raise ProcessingError("no input files given and no source_directory configured")
        return scan_excel_files(Path(cfg.source_directory))
    files: list[Path] = []
    for p in paths:
        if p.is_dir():
            files.extend(scan_excel_files(p))
        else:
            # 存在しないファイルもそのまま渡す (UnreadableFile として結果に残す)
            files.append(p)
    return files


def _inspect_data(files: list[Path], cfg: ImportConfig) -> int:
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            with open_workbook(f, keep_na_strings=cfg.keep_na_strings) as wb:
                for sheet in wb:
                    print(f"  SHEET: {sheet.sheet_name} cols={sheet.columns} rows={len(sheet.rows)}")
                    # datetime を含むと JSON 化できないため isoformat へ
                    safe_rows = [
                        {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()}
                        for r in sheet.rows[:3]
                    ]
                    print("    sample_rows=", safe_rows)
        except UnreadableFileError as e:
            print(f"  read_error: {e}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _read_dotenv(Path(".env"))

    if args.debug:
        set_debug()
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        files = _collect_files(args.paths, cfg)
    except ProcessingError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(files, cfg)

    logger.info(f"importing {len(files)} file(s) mode={'dry-run' if args.dry_run else 'live'}")

    if args.dry_run:
        result = import_files(files, ImportContext.dry_run(cfg))
    else:
        try:
            provider = ConnectionProvider.from_config(cfg.database)
        except psycopg2.Error as e:
            logger.error(f"database: {e}")
            return EXIT_FATAL
        with provider:
            result = import_files(files, ImportContext.for_database(cfg, provider))

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(
            json.dumps([f.to_dict() for f in result.files], ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )
        logger.info(f"report written: {args.report}")

    # log_summary が "SUMMARY " を付与するので先頭を除く
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
