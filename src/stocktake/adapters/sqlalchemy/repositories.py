"""Repository implementations backed by SQLAlchemy sessions.

Queries that read or write through Core tables flush the session first so that
pending entities added earlier in the same unit of work are visible to them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, exists, func, select, update

from stocktake.adapters.sqlalchemy.mappings import (
    conflict_table,
    count_line_table,
    counting_run_table,
    inventory_session_table,
    product_table,
    zone_table,
)
from stocktake.domain.model import (
    Conflict,
    ConflictStatus,
    CountingRun,
    CountLine,
    InventorySession,
    LineSnapshot,
    OpenConflictRow,
    OwnerRef,
    Product,
    RunHeader,
    Zone,
    ZoneConflictCount,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import Row, Select
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session


class _SessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _flush(self) -> None:
        self.session.flush()

    def _rowcount(self, statement: Any) -> int:
        self._flush()
        result = cast("CursorResult[Any]", self.session.execute(statement))
        return result.rowcount


class SqlAlchemyZoneRepository(_SessionRepository):
    def add(self, entity: Zone) -> None:
        self.session.add(entity)

    def get(self, zone_id: UUID) -> Zone | None:
        return self.session.get(Zone, zone_id)

    def lock(self, zone_id: UUID) -> None:
        # First write of the transaction: row lock on PostgreSQL, write lock on SQLite.
        self.session.execute(
            update(zone_table)
            .where(zone_table.c.id == zone_id)
            .values(lock_version=zone_table.c.lock_version + 1)
        )

    def for_shop(self, shop_id: UUID) -> list[Zone]:
        stmt = select(Zone).where(zone_table.c.shop_id == shop_id).order_by(zone_table.c.code)
        return list(self.session.scalars(stmt))


class SqlAlchemyProductRepository(_SessionRepository):
    def add(self, entity: Product) -> None:
        self.session.add(entity)

    def find_by_codes(self, shop_id: UUID, codes: Collection[str]) -> dict[str, Product]:
        if not codes:
            return {}
        stmt = (
            select(Product)
            .where(product_table.c.shop_id == shop_id)
            .where(product_table.c.code.in_(list(codes)))
            .order_by(product_table.c.created_at)
        )
        found: dict[str, Product] = {}
        for product in self.session.scalars(stmt):
            if product.code is not None:
                found.setdefault(product.code, product)
        return found


class SqlAlchemySessionRepository(_SessionRepository):
    def add(self, entity: InventorySession) -> None:
        self.session.add(entity)

    def get(self, session_id: UUID) -> InventorySession | None:
        return self.session.get(InventorySession, session_id)

    def remove(self, session: InventorySession) -> None:
        self.session.delete(session)

    def has_runs(self, session_id: UUID) -> bool:
        self._flush()
        stmt = select(exists().where(counting_run_table.c.session_id == session_id))
        return bool(self.session.execute(stmt).scalar())

    def has_active_runs(self, session_id: UUID) -> bool:
        self._flush()
        stmt = select(
            exists()
            .where(counting_run_table.c.session_id == session_id)
            .where(counting_run_table.c.completed_at.is_(None))
        )
        return bool(self.session.execute(stmt).scalar())

    def count_open_for_shop(self, shop_id: UUID) -> int:
        self._flush()
        stmt = (
            select(func.count(func.distinct(inventory_session_table.c.id)))
            .select_from(inventory_session_table)
            .join(
                counting_run_table,
                counting_run_table.c.session_id == inventory_session_table.c.id,
            )
            .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
            .where(zone_table.c.shop_id == shop_id)
            .where(inventory_session_table.c.completed_at.is_(None))
        )
        return int(self.session.execute(stmt).scalar_one())

    def remove_orphans(self, session_ids: Collection[UUID]) -> int:
        if not session_ids:
            return 0
        orphaned = ~exists().where(counting_run_table.c.session_id == inventory_session_table.c.id)
        return self._rowcount(
            delete(inventory_session_table)
            .where(inventory_session_table.c.id.in_(list(session_ids)))
            .where(orphaned)
        )


class SqlAlchemyCountingRunRepository(_SessionRepository):
    def add(self, entity: CountingRun) -> None:
        self.session.add(entity)

    def get(self, run_id: UUID) -> CountingRun | None:
        return self.session.get(CountingRun, run_id)

    def remove(self, run: CountingRun) -> None:
        self.session.delete(run)

    def find_active(self, zone_id: UUID, count_type: int) -> list[CountingRun]:
        stmt = (
            select(CountingRun)
            .where(counting_run_table.c.zone_id == zone_id)
            .where(counting_run_table.c.count_type == count_type)
            .where(counting_run_table.c.completed_at.is_(None))
            .order_by(counting_run_table.c.started_at.desc())
        )
        return list(self.session.scalars(stmt))

    def count_lines(self, run_id: UUID) -> int:
        self._flush()
        stmt = (
            select(func.count())
            .select_from(count_line_table)
            .where(count_line_table.c.run_id == run_id)
        )
        return int(self.session.execute(stmt).scalar_one())

    def latest_completed(self, zone_id: UUID, count_type: int) -> CountingRun | None:
        stmt = (
            select(CountingRun)
            .where(counting_run_table.c.zone_id == zone_id)
            .where(counting_run_table.c.count_type == count_type)
            .where(counting_run_table.c.completed_at.is_not(None))
            .order_by(counting_run_table.c.completed_at.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def completed_for_zone(self, zone_id: UUID) -> list[CountingRun]:
        stmt = (
            select(CountingRun)
            .where(counting_run_table.c.zone_id == zone_id)
            .where(counting_run_table.c.completed_at.is_not(None))
            .order_by(counting_run_table.c.completed_at, counting_run_table.c.count_type)
        )
        return list(self.session.scalars(stmt))

    def for_zones(self, zone_ids: Collection[UUID]) -> list[CountingRun]:
        if not zone_ids:
            return []
        stmt = select(CountingRun).where(counting_run_table.c.zone_id.in_(list(zone_ids)))
        return list(self.session.scalars(stmt))

    def complete_active(self, zone_id: UUID, count_type: int, completed_at: datetime) -> int:
        return self._rowcount(
            update(counting_run_table)
            .where(counting_run_table.c.zone_id == zone_id)
            .where(counting_run_table.c.count_type == count_type)
            .where(counting_run_table.c.completed_at.is_(None))
            .values(completed_at=completed_at)
        )

    def delete_many(self, run_ids: Collection[UUID]) -> int:
        if not run_ids:
            return 0
        return self._rowcount(
            delete(counting_run_table).where(counting_run_table.c.id.in_(list(run_ids)))
        )

    def open_with_lines_for_shop(self, shop_id: UUID) -> list[RunHeader]:
        stmt = (
            _run_header_query()
            .where(zone_table.c.shop_id == shop_id)
            .where(counting_run_table.c.completed_at.is_(None))
            .having(func.count(count_line_table.c.id) > 0)
            .order_by(counting_run_table.c.started_at.desc())
        )
        return self._headers(stmt)

    def recent_completed_for_shop(self, shop_id: UUID, limit: int) -> list[RunHeader]:
        stmt = (
            _run_header_query()
            .where(zone_table.c.shop_id == shop_id)
            .where(counting_run_table.c.completed_at.is_not(None))
            .order_by(counting_run_table.c.completed_at.desc())
            .limit(limit)
        )
        return self._headers(stmt)

    def headers_for_shop(self, shop_id: UUID) -> list[RunHeader]:
        stmt = (
            _run_header_query()
            .where(zone_table.c.shop_id == shop_id)
            .order_by(counting_run_table.c.started_at.desc(), counting_run_table.c.id)
        )
        return self._headers(stmt)

    def header(self, run_id: UUID) -> RunHeader | None:
        headers = self._headers(_run_header_query().where(counting_run_table.c.id == run_id))
        return headers[0] if headers else None

    def last_activity_for_shop(self, shop_id: UUID) -> datetime | None:
        self._flush()
        candidates = (
            select(func.max(count_line_table.c.counted_at))
            .select_from(count_line_table)
            .join(counting_run_table, counting_run_table.c.id == count_line_table.c.run_id)
            .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
            .where(zone_table.c.shop_id == shop_id),
            select(func.max(counting_run_table.c.started_at))
            .select_from(counting_run_table)
            .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
            .where(zone_table.c.shop_id == shop_id),
            select(func.max(counting_run_table.c.completed_at))
            .select_from(counting_run_table)
            .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
            .where(zone_table.c.shop_id == shop_id),
        )
        values = [self.session.execute(stmt).scalar_one_or_none() for stmt in candidates]
        present = [value for value in values if value is not None]
        return max(present) if present else None

    def _headers(self, stmt: Select[Any]) -> list[RunHeader]:
        self._flush()
        return [_to_run_header(row) for row in self.session.execute(stmt)]


class SqlAlchemyCountLineRepository(_SessionRepository):
    def add(self, entity: CountLine) -> None:
        self.session.add(entity)

    def snapshots_for_runs(self, run_ids: Sequence[UUID]) -> list[LineSnapshot]:
        if not run_ids:
            return []
        self._flush()
        stmt = (
            select(
                count_line_table.c.id,
                count_line_table.c.run_id,
                count_line_table.c.product_id,
                product_table.c.code,
                product_table.c.sku,
                product_table.c.name,
                count_line_table.c.quantity,
                count_line_table.c.counted_at,
                count_line_table.c.manual,
            )
            .join_from(
                count_line_table,
                product_table,
                product_table.c.id == count_line_table.c.product_id,
            )
            .where(count_line_table.c.run_id.in_(list(run_ids)))
            .order_by(count_line_table.c.counted_at, count_line_table.c.id)
        )
        return [
            LineSnapshot(
                line_id=row.id,
                run_id=row.run_id,
                product_id=row.product_id,
                product_code=row.code,
                sku=row.sku,
                name=row.name,
                quantity=row.quantity,
                counted_at=row.counted_at,
                manual=bool(row.manual),
            )
            for row in self.session.execute(stmt)
        ]

    def delete_for_runs(self, run_ids: Collection[UUID]) -> int:
        if not run_ids:
            return 0
        return self._rowcount(
            delete(count_line_table).where(count_line_table.c.run_id.in_(list(run_ids)))
        )


class SqlAlchemyConflictRepository(_SessionRepository):
    def add(self, entity: Conflict) -> None:
        self.session.add(entity)

    def delete_open_for_runs(self, run_ids: Collection[UUID]) -> int:
        if not run_ids:
            return 0
        anchored = select(count_line_table.c.id).where(
            count_line_table.c.run_id.in_(list(run_ids))
        )
        return self._rowcount(
            delete(conflict_table)
            .where(conflict_table.c.status == ConflictStatus.OPEN)
            .where(conflict_table.c.count_line_id.in_(anchored))
        )

    def delete_open_for_zone(self, zone_id: UUID) -> int:
        anchored = (
            select(count_line_table.c.id)
            .join_from(
                count_line_table,
                counting_run_table,
                counting_run_table.c.id == count_line_table.c.run_id,
            )
            .where(counting_run_table.c.zone_id == zone_id)
        )
        return self._rowcount(
            delete(conflict_table)
            .where(conflict_table.c.status == ConflictStatus.OPEN)
            .where(conflict_table.c.count_line_id.in_(anchored))
        )

    def delete_for_runs(self, run_ids: Collection[UUID]) -> int:
        if not run_ids:
            return 0
        anchored = select(count_line_table.c.id).where(
            count_line_table.c.run_id.in_(list(run_ids))
        )
        return self._rowcount(
            delete(conflict_table).where(conflict_table.c.count_line_id.in_(anchored))
        )

    def open_for_zone(self, zone_id: UUID) -> list[OpenConflictRow]:
        self._flush()
        stmt = (
            select(
                conflict_table.c.id,
                conflict_table.c.count_line_id,
                count_line_table.c.run_id,
                count_line_table.c.product_id,
                product_table.c.code,
                product_table.c.sku,
                product_table.c.name,
                conflict_table.c.created_at,
            )
            .select_from(conflict_table)
            .join(count_line_table, count_line_table.c.id == conflict_table.c.count_line_id)
            .join(counting_run_table, counting_run_table.c.id == count_line_table.c.run_id)
            .join(product_table, product_table.c.id == count_line_table.c.product_id)
            .where(counting_run_table.c.zone_id == zone_id)
            .where(conflict_table.c.status == ConflictStatus.OPEN)
            .order_by(conflict_table.c.created_at, product_table.c.code)
        )
        return [
            OpenConflictRow(
                conflict_id=row.id,
                count_line_id=row.count_line_id,
                run_id=row.run_id,
                product_id=row.product_id,
                product_code=row.code,
                sku=row.sku,
                name=row.name,
                created_at=row.created_at,
            )
            for row in self.session.execute(stmt)
        ]

    def open_counts_for_shop(self, shop_id: UUID) -> list[ZoneConflictCount]:
        self._flush()
        stmt = (
            select(
                zone_table.c.id,
                zone_table.c.code,
                zone_table.c.label,
                func.count(conflict_table.c.id).label("conflict_lines"),
            )
            .select_from(conflict_table)
            .join(count_line_table, count_line_table.c.id == conflict_table.c.count_line_id)
            .join(counting_run_table, counting_run_table.c.id == count_line_table.c.run_id)
            .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
            .where(zone_table.c.shop_id == shop_id)
            .where(conflict_table.c.status == ConflictStatus.OPEN)
            .group_by(zone_table.c.id, zone_table.c.code, zone_table.c.label)
            .order_by(zone_table.c.code)
        )
        return [
            ZoneConflictCount(
                zone_id=row.id,
                zone_code=row.code,
                zone_label=row.label,
                conflict_lines=int(row.conflict_lines),
            )
            for row in self.session.execute(stmt)
        ]


def _run_header_query() -> Select[Any]:
    return (
        select(
            counting_run_table.c.id,
            counting_run_table.c.session_id,
            counting_run_table.c.zone_id,
            zone_table.c.code,
            zone_table.c.label,
            counting_run_table.c.count_type,
            counting_run_table.c.owner_user_id,
            counting_run_table.c.operator_display_name,
            counting_run_table.c.started_at,
            counting_run_table.c.completed_at,
            func.count(count_line_table.c.id).label("line_count"),
        )
        .select_from(counting_run_table)
        .join(zone_table, zone_table.c.id == counting_run_table.c.zone_id)
        .outerjoin(count_line_table, count_line_table.c.run_id == counting_run_table.c.id)
        .group_by(counting_run_table.c.id, zone_table.c.code, zone_table.c.label)
    )


def _to_run_header(row: Row[Any]) -> RunHeader:
    owner: OwnerRef | None = None
    if row.owner_user_id is not None or (row.operator_display_name or "").strip():
        owner = OwnerRef(user_id=row.owner_user_id, label=row.operator_display_name)
    return RunHeader(
        run_id=row.id,
        session_id=row.session_id,
        zone_id=row.zone_id,
        zone_code=row.code,
        zone_label=row.label,
        count_type=row.count_type,
        owner=owner,
        started_at=row.started_at,
        completed_at=row.completed_at,
        line_count=int(row.line_count),
    )
