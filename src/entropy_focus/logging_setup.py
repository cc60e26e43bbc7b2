# src/entropy_focus/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "entropy.log"

# Polled every second; only problems are worth showing on the terminal.
_QUIET_APP_LOGGERS = ("entropy_focus.session.clock",)


class _ReplFilter(logging.Filter):
    """
    Console-side filter so log lines do not drown the REPL prompt.

    App records pass, except the session clock below WARNING. Anything
    from other libraries (and captured warnings) needs ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("entropy_focus."):
            return record.levelno >= logging.ERROR
        if name.startswith(_QUIET_APP_LOGGERS):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/entropy",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """Route all records to stderr (filtered) and to <log_dir>/entropy.log (unfiltered)."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

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
    console.addFilter(_ReplFilter())
    root.addHandler(console)

    session_file = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
    session_file.setLevel(file_level)
    session_file.setFormatter(fmt)
    root.addHandler(session_file)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
