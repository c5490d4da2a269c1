"""Logging setup shared by the desktop app and the web API."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the ``badgegen`` logger once; later calls return it unchanged."""
    log = logging.getLogger("badgegen")
    if getattr(log, "_configured", False):
        return log

    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    log.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(fmt)
        log.addHandler(fh)

    setattr(log, "_configured", True)
    log.debug("Logging initialized. Debug=%s", debug)
    return log
