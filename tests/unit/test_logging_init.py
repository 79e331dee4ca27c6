from __future__ import annotations

import logging

from contact_import.logging.init import (
    APP_LOGGER_NAME,
    LabeledFormatter,
    SUMMARY_LEVEL,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    assert setup_logging() is setup_logging()
    assert get_logger() is setup_logging()
    assert len(get_logger().handlers) == 1


def test_labeled_prefixes(capsys):
    setup_logging()
    child = logging.getLogger("contact_import.services.orchestrator")
    child.info("file=a.xlsx sheet=S status=complete")
    child.warning("file=a.xlsx sheet=T status=failed")
    child.error("database: connection refused")
    log_summary("files=1/1 success=1")
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "INFO file=a.xlsx sheet=S status=complete",
        "WARN file=a.xlsx sheet=T status=failed",
        "ERROR database: connection refused",
        "SUMMARY files=1/1 success=1",
    ]


def test_debug_hidden_until_enabled(capsys):
    logger = setup_logging()
    logger.debug("hidden")
    set_debug()
    logger.debug("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG shown" in out


def test_formatter_appends_traceback():
    fmt = LabeledFormatter()
    try:
        raise ValueError("bad cell")
    except ValueError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    text = fmt.format(record)
    assert text.startswith("ERROR failed\n")
    assert "ValueError: bad cell" in text


def test_summary_level_value():
    assert logging.INFO < SUMMARY_LEVEL < logging.WARNING


def test_worker_thread_name_is_tagged():
    fmt = LabeledFormatter()
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "file=a.xlsx", None, None)
    record.threadName = "import_0"
    assert fmt.format(record) == "INFO [import_0] file=a.xlsx"
    record.threadName = "MainThread"
    assert fmt.format(record) == "INFO file=a.xlsx"
