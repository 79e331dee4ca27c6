from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Console logging for the contact importer.

Every line is ``LABEL message`` with LABEL one of INFO|WARN|ERROR|SUMMARY
(DEBUG with --debug). Module loggers (``logging.getLogger(__name__)``) sit
under the ``contact_import`` logger and share its single stdout handler.

When files are imported in parallel, lines emitted from a worker thread carry
the worker name (``[import_1] file=... sheet=...``).
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "WORKER_THREAD_PREFIX",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
]

APP_LOGGER_NAME = "contact_import"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

# import_files のスレッドプール名 (ThreadPoolExecutor の thread_name_prefix)
WORKER_THREAD_PREFIX = "import"

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        body = record.getMessage()
        thread = record.threadName or ""
        if thread.startswith(WORKER_THREAD_PREFIX + "_"):
            body = f"[{thread}] {body}"
        line = f"{label} {body}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    return handler


def setup_logging(stream: TextIO | None = None) -> logging.Logger:
    """Configure the ``contact_import`` logger once and return it.

    Output goes to stdout (the SUMMARY line is part of the CLI contract).
    Later calls return the same logger until reset_logging().
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(_console_handler(stream or sys.stdout, logging.INFO))
    # ルートロガーへ流すと二重出力になる
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def set_debug() -> None:
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers:
        h.setLevel(logging.DEBUG)


def reset_logging() -> None:
    """Forget the configured logger (tests re-bind stdout per test)."""
    global _logger
    _logger = None
