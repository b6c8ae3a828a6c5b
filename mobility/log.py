"""Centralized logging configuration (stdlib only).

Two streams: the usual module loggers, and ``mobility.audit`` which records one
line per record mutation (who changed which record, and how).
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False

AUDIT_LOGGER = "mobility.audit"


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def configure_logging(level: str | None = None, log_dir: Path | None = None) -> None:
    """Attach console + daily file handlers to the root logger (once).

    ``level`` overrides ``LOG_LEVEL``; ``log_dir`` overrides ``MOBILITY_LOG_DIR``.
    Calling again after handlers exist only adjusts the level.
    """
    global _configured
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    lvl = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)
    _configured = True

    if root.handlers:
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                h.setLevel(lvl)
        return

    fmt = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(lvl)
    console.setFormatter(fmt)
    root.addHandler(console)

    target = log_dir or Path(os.environ.get("MOBILITY_LOG_DIR", _DEFAULT_LOG_DIR))
    try:
        target.mkdir(parents=True, exist_ok=True)
        log_file = target / f"portal_{datetime.now().strftime('%Y-%m-%d')}.log"
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)
    except OSError:
        # read-only checkout: console logging only
        pass


def audit(action: str, actor_id: str, collection: str, record_id: object, **fields: object) -> None:
    """One INFO line on the audit logger, e.g. ``decide by=pm1 applications#4 status=Accepted``."""
    extra = " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
    logging.getLogger(AUDIT_LOGGER).info(
        "%s by=%s %s#%s%s", action, actor_id, collection, record_id, f" {extra}" if extra else "",
    )
