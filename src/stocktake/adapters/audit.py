"""Audit sink writing human-readable activity messages to a dedicated logger."""

from __future__ import annotations

import logging

from stocktake.config import AUDIT_LOGGER_NAME

__all__ = ["AUDIT_LOGGER_NAME", "LoggingAuditSink"]

log = logging.getLogger(__name__)


class LoggingAuditSink:
    """Fire-and-forget audit sink: failures are logged, never propagated."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def record(self, message: str, *, actor: str | None, category: str) -> None:
        try:
            self._logger.info(
                "%s",
                message,
                extra={"audit_actor": actor, "audit_category": category},
            )
        except Exception:
            log.exception("Failed to record audit entry %s", category)
