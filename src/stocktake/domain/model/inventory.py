"""Inventory entities: zones, products, sessions, runs, count lines and conflicts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 # needed at runtime (SQLAlchemy)
from decimal import Decimal  # noqa: TC003
from typing import Final
from uuid import UUID  # noqa: TC003

from .entity import Entity
from .enums import ConflictStatus
from .owner import OwnerRef

# Stored quantities are fixed-point: 18 digits, 3 of them after the decimal point.
QUANTITY_PRECISION: Final[int] = 18
QUANTITY_SCALE: Final[int] = 3


@dataclass(eq=False, kw_only=True)
class Zone(Entity):
    """A physical storage location being inventoried."""

    shop_id: UUID
    code: str
    label: str
    disabled: bool = False
    lock_version: int = 0


@dataclass(eq=False, kw_only=True)
class Product(Entity):
    shop_id: UUID
    sku: str
    name: str
    code: str | None = None
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class InventorySession(Entity):
    name: str
    started_at: datetime
    completed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.completed_at is None

    def complete(self, at: datetime) -> None:
        self.completed_at = at


@dataclass(eq=False, kw_only=True)
class CountingRun(Entity):
    """One operator's attempt to count one zone for one count type."""

    session_id: UUID
    zone_id: UUID
    count_type: int
    started_at: datetime
    owner_user_id: UUID | None = None
    operator_display_name: str | None = None
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    @property
    def owner(self) -> OwnerRef | None:
        if self.owner_user_id is None and not (self.operator_display_name or "").strip():
            return None
        return OwnerRef(user_id=self.owner_user_id, label=self.operator_display_name)

    def assign_owner(self, owner: OwnerRef) -> None:
        self.owner_user_id = owner.user_id
        self.operator_display_name = owner.label

    def is_owned_by(self, owner: OwnerRef) -> bool:
        """Unowned runs may be taken over by anyone."""
        current = self.owner
        return current is None or current.matches(owner)

    def complete(self, at: datetime) -> None:
        self.completed_at = at


@dataclass(eq=False, kw_only=True)
class CountLine(Entity):
    run_id: UUID
    product_id: UUID
    quantity: Decimal
    counted_at: datetime
    manual: bool = False


@dataclass(eq=False, kw_only=True)
class Conflict(Entity):
    """Disagreement between two runs for one product, anchored on a count line."""

    count_line_id: UUID
    created_at: datetime
    status: ConflictStatus = ConflictStatus.OPEN
    notes: str | None = None
    resolved_at: datetime | None = None


__all__ = [
    "QUANTITY_PRECISION",
    "QUANTITY_SCALE",
    "Conflict",
    "CountLine",
    "CountingRun",
    "InventorySession",
    "Product",
    "Zone",
]
