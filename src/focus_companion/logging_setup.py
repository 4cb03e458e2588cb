# src/focus_companion/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "focus.log"

# Loggers that talk over the network on every tick; only their problems matter on the console.
_THIRD_PARTY = ("nio", "httpx", "httpcore", "openai", "googleapiclient", "google_auth_httplib2")


class _ConsoleFilter(logging.Filter):
    """
    Keep the REPL readable while timers fire in the background.

    - app logs pass, except the Matrix connector (WARNING+ only)
    - cron/scheduler DEBUG chatter stays in the file
    - third-party and py.warnings records need ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if not name.startswith("focus_companion."):
            return record.levelno >= logging.ERROR

        if name.startswith("focus_companion.connectors.matrix_"):
            return record.levelno >= logging.WARNING
        if name.startswith("focus_companion.tasks.") and record.levelno < logging.INFO:
            return False
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/focus",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backups: int = 3,
) -> Path:
    """
    Console handler (stderr, filtered) + rotating file handler (everything).

    Call once at startup, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(str(log_file), maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for name in _THIRD_PARTY:
        logging.getLogger(name).setLevel(logging.INFO)

    return log_file
