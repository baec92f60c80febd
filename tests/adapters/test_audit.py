from __future__ import annotations

import logging
from datetime import UTC
from typing import TYPE_CHECKING

from stocktake.adapters.audit import AUDIT_LOGGER_NAME, LoggingAuditSink
from stocktake.adapters.clock import SystemClock

if TYPE_CHECKING:
    import pytest


def test_logging_audit_sink_writes_to_audit_logger(caplog: pytest.LogCaptureFixture) -> None:
    sink = LoggingAuditSink()

    with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
        sink.record("Alice started A1", actor="Alice", category="inventories.start.success")

    [record] = [entry for entry in caplog.records if entry.name == AUDIT_LOGGER_NAME]
    assert record.getMessage() == "Alice started A1"
    assert record.__dict__["audit_actor"] == "Alice"
    assert record.__dict__["audit_category"] == "inventories.start.success"


class _ExplodingLogger(logging.Logger):
    def info(self, *args: object, **kwargs: object) -> None:  # noqa: ARG002
        raise RuntimeError("handler down")


def test_logging_audit_sink_never_raises(caplog: pytest.LogCaptureFixture) -> None:
    sink = LoggingAuditSink(logger=_ExplodingLogger("exploding"))

    with caplog.at_level(logging.ERROR, logger="stocktake.adapters.audit"):
        sink.record("lost", actor=None, category="inventories.reset")

    assert any("inventories.reset" in entry.getMessage() for entry in caplog.records)


def test_system_clock_returns_aware_utc_time() -> None:
    now = SystemClock().now()

    assert now.tzinfo is UTC
