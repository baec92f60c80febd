"""Logging set-up for the stocktake command line and its audit trail."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

AUDIT_LOGGER_NAME: Final[str] = "stocktake.audit"
AUDIT_LOG_ENV: Final[str] = "STOCKTAKE_AUDIT_LOG"

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
AUDIT_FORMAT: Final[str] = "%(asctime)s %(audit_category)s actor=%(audit_actor)s %(message)s"


def get_audit_log_path() -> Path | None:
    """Return the audit file configured through ``STOCKTAKE_AUDIT_LOG``, if any."""

    raw = os.getenv(AUDIT_LOG_ENV)
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


def configure_logging(
    *,
    level: int = logging.INFO,
    force: bool = False,
    audit_log: Path | None = None,
) -> None:
    """Initialise the root logger for CLI output.

    When ``audit_log`` is given, audit entries are also appended to that file, one
    line each with category and actor. Configuring the same file twice is a no-op.
    """

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    if audit_log is not None:
        _attach_audit_file(audit_log)


def _attach_audit_file(path: Path) -> None:
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    target = str(path.resolve())
    for handler in audit_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter(
            AUDIT_FORMAT,
            defaults={"audit_category": "-", "audit_actor": "-"},
        )
    )
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
