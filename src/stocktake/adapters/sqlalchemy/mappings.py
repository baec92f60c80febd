"""SQLAlchemy mapping metadata for the inventory domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Table,
    TypeDecorator,
    Uuid,
    false,
    orm,
)
from sqlalchemy.orm import configure_mappers

from stocktake.domain.model import (
    QUANTITY_PRECISION,
    QUANTITY_SCALE,
    Conflict,
    ConflictStatus,
    CountingRun,
    CountLine,
    InventorySession,
    Product,
    Zone,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

zone_table = Table(
    "zone",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("shop_id", UUIDColumnType, nullable=False, index=True),
    Column("code", String(64), nullable=False),
    Column("label", String, nullable=False),
    Column("disabled", Boolean, nullable=False, default=False, server_default=false()),
    Column("lock_version", Integer, nullable=False, default=0, server_default="0"),
)

product_table = Table(
    "product",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("shop_id", UUIDColumnType, nullable=False),
    Column("sku", String(32), nullable=False),
    Column("name", String, nullable=False),
    Column("code", String(64), nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Index("ix_product_shop_code", "shop_id", "code"),
)

inventory_session_table = Table(
    "inventory_session",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
)

counting_run_table = Table(
    "counting_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "session_id",
        UUIDColumnType,
        ForeignKey("inventory_session.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("zone_id", UUIDColumnType, ForeignKey("zone.id"), nullable=False),
    Column("count_type", SmallInteger, nullable=False),
    Column("owner_user_id", UUIDColumnType, nullable=True),
    Column("operator_display_name", String, nullable=True),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
    Index("ix_counting_run_zone_type_completed", "zone_id", "count_type", "completed_at"),
)

count_line_table = Table(
    "count_line",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "run_id",
        UUIDColumnType,
        ForeignKey("counting_run.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("product_id", UUIDColumnType, ForeignKey("product.id"), nullable=False),
    Column(
        "quantity",
        Numeric(QUANTITY_PRECISION, QUANTITY_SCALE, asdecimal=True),
        nullable=False,
    ),
    Column("counted_at", UTCDateTime(), nullable=False),
    Column("manual", Boolean, nullable=False, default=False),
)

conflict_table = Table(
    "conflict",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "count_line_id",
        UUIDColumnType,
        ForeignKey("count_line.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "status",
        Enum(
            ConflictStatus,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=ConflictStatus.OPEN,
    ),
    Column("notes", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("resolved_at", UTCDateTime(), nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Zone, zone_table)
    mapper_registry.map_imperatively(Product, product_table)
    mapper_registry.map_imperatively(InventorySession, inventory_session_table)
    mapper_registry.map_imperatively(CountingRun, counting_run_table)
    mapper_registry.map_imperatively(CountLine, count_line_table)
    mapper_registry.map_imperatively(Conflict, conflict_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
