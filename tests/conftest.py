from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from stocktake.adapters.sqlalchemy import start_mappers
from stocktake.adapters.sqlalchemy.migrations import upgrade_head
from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.inventory import RecordingAuditSink, TickingClock, make_zone, seed_zone

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from stocktake.domain.model import Zone


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyInventoryUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyInventoryUnitOfWork:
        return SqlAlchemyInventoryUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def zone(sqlite_unit_of_work: Callable[[], SqlAlchemyInventoryUnitOfWork]) -> Zone:
    return seed_zone(sqlite_unit_of_work, make_zone())
