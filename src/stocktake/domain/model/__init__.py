"""Domain model for inventory counting."""

from __future__ import annotations

from .entity import Entity, new_id
from .enums import (
    CONTROL_PASS,
    FIRST_PASS,
    SECOND_PASS,
    ConflictStatus,
    CountProgress,
    counterpart_count_type,
    describe_count_type,
)
from .inventory import (
    QUANTITY_PRECISION,
    QUANTITY_SCALE,
    Conflict,
    CountingRun,
    CountLine,
    InventorySession,
    Product,
    Zone,
)
from .owner import OwnerRef
from .views import LineSnapshot, OpenConflictRow, RunHeader, ZoneConflictCount

__all__ = [
    "CONTROL_PASS",
    "FIRST_PASS",
    "QUANTITY_PRECISION",
    "QUANTITY_SCALE",
    "SECOND_PASS",
    "Conflict",
    "ConflictStatus",
    "CountLine",
    "CountProgress",
    "CountingRun",
    "Entity",
    "InventorySession",
    "LineSnapshot",
    "OpenConflictRow",
    "OwnerRef",
    "Product",
    "RunHeader",
    "Zone",
    "ZoneConflictCount",
    "counterpart_count_type",
    "describe_count_type",
    "new_id",
]
