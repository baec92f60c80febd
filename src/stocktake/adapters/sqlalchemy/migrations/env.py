"""Alembic environment for the stocktake schema.

Migrations normally run through ``upgrade_head``, which hands over an open connection
in ``config.attributes["connection"]``. Without one, the database URI comes from the
attributes, ``sqlalchemy.url`` or the storage configuration, in that order.
"""

from __future__ import annotations

import logging
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from stocktake.adapters.sqlalchemy import mapper_registry, start_mappers
from stocktake.config import get_database_config

config = context.config
log = logging.getLogger("alembic.env")

start_mappers()

target_metadata = mapper_registry.metadata


def _database_uri() -> str:
    configured = config.attributes.get("database_uri") or config.get_main_option("sqlalchemy.url")
    return configured or get_database_config().uri


def _run(**options: Any) -> None:
    # Batch mode keeps ALTER-style revisions working on SQLite.
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=True,
        compare_type=True,
        compare_server_default=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    log.info("Rendering stocktake migrations as SQL")
    _run(url=_database_uri(), literal_binds=True)


def run_migrations_online() -> None:
    existing_connection = config.attributes.get("connection")
    if existing_connection is not None:
        _run(connection=existing_connection)
        return

    engine = create_engine(_database_uri(), poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _run(connection=connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
