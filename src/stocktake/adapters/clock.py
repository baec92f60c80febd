"""Clock adapters."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


if TYPE_CHECKING:
    from stocktake.domain.ports import Clock

    _clock_check: Clock = SystemClock()
