"""File logging; the terminal belongs to the UI."""

from __future__ import annotations

import logging
from pathlib import Path

from tablepos.config import LOG_LEVEL, LOG_PATH

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(path: str = LOG_PATH, level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a single file handler to the ``tablepos`` logger.

    If the log file cannot be opened, logging is disabled rather than stopping
    the app.
    """
    root = logging.getLogger("tablepos")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False

    try:
        log_file = Path(path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    return root
