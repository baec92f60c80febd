from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.inventory import make_zone

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyInventoryUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_repositories_require_an_open_unit_of_work(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    uow = SqlAlchemyInventoryUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_persists_on_commit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    zone = make_zone()

    with SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.zones.add(zone)
        uow.commit()

    with SqlAlchemyInventoryUnitOfWork() as uow:
        loaded = uow.repositories.zones.get(zone.id)
        assert loaded is not None
        assert loaded.code == zone.code


def test_unit_of_work_rolls_back_when_block_raises(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    zone = make_zone()

    with pytest.raises(RuntimeError), SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.zones.add(zone)
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyInventoryUnitOfWork() as uow:
        assert uow.repositories.zones.get(zone.id) is None


def test_unit_of_work_discards_uncommitted_changes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    zone = make_zone()

    with SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.zones.add(zone)

    with SqlAlchemyInventoryUnitOfWork() as uow:
        assert uow.repositories.zones.get(zone.id) is None
