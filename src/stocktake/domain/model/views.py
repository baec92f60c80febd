"""Flat read models returned by repository queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003
from decimal import Decimal  # noqa: TC003
from uuid import UUID  # noqa: TC003

from .owner import OwnerRef  # noqa: TC001


@dataclass(frozen=True, slots=True)
class LineSnapshot:
    """A persisted count line joined with its product."""

    line_id: UUID
    run_id: UUID
    product_id: UUID
    product_code: str | None
    sku: str
    name: str
    quantity: Decimal
    counted_at: datetime
    manual: bool = False


@dataclass(frozen=True, slots=True)
class RunHeader:
    """A counting run joined with its zone and line count."""

    run_id: UUID
    session_id: UUID
    zone_id: UUID
    zone_code: str
    zone_label: str
    count_type: int
    owner: OwnerRef | None
    started_at: datetime
    completed_at: datetime | None
    line_count: int


@dataclass(frozen=True, slots=True)
class OpenConflictRow:
    conflict_id: UUID
    count_line_id: UUID
    run_id: UUID
    product_id: UUID
    product_code: str | None
    sku: str
    name: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ZoneConflictCount:
    zone_id: UUID
    zone_code: str
    zone_label: str
    conflict_lines: int
