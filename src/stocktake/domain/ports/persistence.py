"""Ports for persisting inventory aggregates and querying their read models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from stocktake.domain.model import (
    Conflict,
    CountingRun,
    CountLine,
    InventorySession,
    Product,
    Zone,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime
    from uuid import UUID

    from stocktake.domain.model import (
        LineSnapshot,
        OpenConflictRow,
        RunHeader,
        ZoneConflictCount,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ZoneRepository(Repository[Zone], Protocol):
    def get(self, zone_id: UUID) -> Zone | None: ...

    def lock(self, zone_id: UUID) -> None:
        """Serialise concurrent writers on the zone until the transaction ends."""
        ...

    def for_shop(self, shop_id: UUID) -> list[Zone]: ...


@runtime_checkable
class ProductRepository(Repository[Product], Protocol):
    def find_by_codes(self, shop_id: UUID, codes: Collection[str]) -> dict[str, Product]: ...


@runtime_checkable
class SessionRepository(Repository[InventorySession], Protocol):
    def get(self, session_id: UUID) -> InventorySession | None: ...

    def remove(self, session: InventorySession) -> None: ...

    def has_runs(self, session_id: UUID) -> bool: ...

    def has_active_runs(self, session_id: UUID) -> bool: ...

    def count_open_for_shop(self, shop_id: UUID) -> int: ...

    def remove_orphans(self, session_ids: Collection[UUID]) -> int:
        """Delete the given sessions that no longer hold any run."""
        ...


@runtime_checkable
class CountingRunRepository(Repository[CountingRun], Protocol):
    def get(self, run_id: UUID) -> CountingRun | None: ...

    def remove(self, run: CountingRun) -> None: ...

    def find_active(self, zone_id: UUID, count_type: int) -> list[CountingRun]:
        """Active runs for the zone and count type, most recently started first."""
        ...

    def count_lines(self, run_id: UUID) -> int: ...

    def latest_completed(self, zone_id: UUID, count_type: int) -> CountingRun | None: ...

    def completed_for_zone(self, zone_id: UUID) -> list[CountingRun]:
        """Completed runs of the zone, oldest completion first."""
        ...

    def for_zones(self, zone_ids: Collection[UUID]) -> list[CountingRun]: ...

    def complete_active(self, zone_id: UUID, count_type: int, completed_at: datetime) -> int: ...

    def delete_many(self, run_ids: Collection[UUID]) -> int: ...

    def open_with_lines_for_shop(self, shop_id: UUID) -> list[RunHeader]: ...

    def recent_completed_for_shop(self, shop_id: UUID, limit: int) -> list[RunHeader]: ...

    def headers_for_shop(self, shop_id: UUID) -> list[RunHeader]:
        """Every run of the shop's zones, most recently started first."""
        ...

    def header(self, run_id: UUID) -> RunHeader | None: ...

    def last_activity_for_shop(self, shop_id: UUID) -> datetime | None: ...


@runtime_checkable
class CountLineRepository(Repository[CountLine], Protocol):
    def snapshots_for_runs(self, run_ids: Sequence[UUID]) -> list[LineSnapshot]: ...

    def delete_for_runs(self, run_ids: Collection[UUID]) -> int: ...


@runtime_checkable
class ConflictRepository(Repository[Conflict], Protocol):
    def delete_open_for_runs(self, run_ids: Collection[UUID]) -> int: ...

    def delete_open_for_zone(self, zone_id: UUID) -> int: ...

    def delete_for_runs(self, run_ids: Collection[UUID]) -> int: ...

    def open_for_zone(self, zone_id: UUID) -> list[OpenConflictRow]: ...

    def open_counts_for_shop(self, shop_id: UUID) -> list[ZoneConflictCount]: ...
