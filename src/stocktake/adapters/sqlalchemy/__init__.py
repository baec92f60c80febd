"""SQLAlchemy adapter package for stocktake."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyConflictRepository,
    SqlAlchemyCountingRunRepository,
    SqlAlchemyCountLineRepository,
    SqlAlchemyProductRepository,
    SqlAlchemySessionRepository,
    SqlAlchemyZoneRepository,
)

__all__ = [
    "SqlAlchemyConflictRepository",
    "SqlAlchemyCountLineRepository",
    "SqlAlchemyCountingRunRepository",
    "SqlAlchemyProductRepository",
    "SqlAlchemySessionRepository",
    "SqlAlchemyZoneRepository",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
