# src/taskdock/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Console thresholds by logger prefix; the first match wins.
_CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("taskdock.sync.worker", logging.WARNING),  # one pass every few seconds
    ("taskdock.", logging.NOTSET),
)


class _ConsoleNoiseFilter(logging.Filter):
    """Keeps the console readable; third-party loggers and py.warnings need ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in _CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskdock",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """Install the console and file handlers on the root logger. Safe to call again; old handlers are replaced."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = _handler(logging.StreamHandler(sys.stderr), console_level, fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)
    root.addHandler(
        _handler(logging.FileHandler(str(log_dir / "taskdock.log"), encoding="utf-8"), file_level, fmt)
    )

    logging.captureWarnings(True)

    # httpx logs every request at INFO.
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
