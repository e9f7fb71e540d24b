"""structlog → stdlib logging setup with JSON files under the project home.

Besides the console, three files are written to ``<home>/logs``:

* ``crawler.log``: every INFO+ event of the run;
* ``error.log``: ERROR events only;
* ``failures.log``: keys abandoned after a search error and batches waiting
  on a retry, i.e. the events an operator replays or investigates.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

import structlog

from .config.loader import project_home

LOGGER_NAME = "catalog_crawler"
FAILURE_EVENTS = frozenset({"key_failed", "batch_retry", "upload_aborted"})
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LOGGING_INITIALISED = False


class FailureEventFilter(logging.Filter):
    """Pass only records produced by one of ``FAILURE_EVENTS``."""

    def filter(self, record: logging.LogRecord) -> bool:
        event = record.msg.get("event") if isinstance(record.msg, dict) else record.msg
        return event in FAILURE_EVENTS


def log_dir() -> Path:
    return project_home() / "logs"


def crawler_log_path() -> Path:
    return log_dir() / "crawler.log"


def failure_log_path() -> Path:
    return log_dir() / "failures.log"


def _file_handler(path: Path, level: str, *filters: str) -> dict[str, Any]:
    path.touch(exist_ok=True)
    handler: dict[str, Any] = {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }
    if filters:
        handler["filters"] = list(filters)
    return handler


def build_logging_config(verbose: bool = False) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping used by :func:`configure_logging`."""

    directory = log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    level = "DEBUG" if verbose else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": _JSON_FORMAT,
            }
        },
        "filters": {"failures": {"()": FailureEventFilter}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "crawler_file": _file_handler(crawler_log_path(), "INFO"),
            "error_file": _file_handler(directory / "error.log", "ERROR"),
            "failure_file": _file_handler(failure_log_path(), "WARNING", "failures"),
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": ["console", "crawler_file", "error_file", "failure_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure stdlib handlers and structlog once per process; return the app logger."""

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        logging.config.dictConfig(build_logging_config(verbose))
        # The JSON formatter renders the event dict handed over by structlog
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "FAILURE_EVENTS",
    "FailureEventFilter",
    "build_logging_config",
    "configure_logging",
    "crawler_log_path",
    "failure_log_path",
    "tail_log",
]
