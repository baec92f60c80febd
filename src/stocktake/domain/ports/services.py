"""Ports for the collaborators the counting core consumes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime: ...


@runtime_checkable
class AuditSink(Protocol):
    """Receives human-readable activity messages; must not raise."""

    def record(self, message: str, *, actor: str | None, category: str) -> None: ...
