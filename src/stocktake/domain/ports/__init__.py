"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    ConflictRepository,
    CountingRunRepository,
    CountLineRepository,
    ProductRepository,
    Repository,
    SessionRepository,
    ZoneRepository,
)
from .services import AuditSink, Clock
from .unit_of_work import (
    InventoryRepositories,
    InventoryUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuditSink",
    "Clock",
    "ConflictRepository",
    "CountLineRepository",
    "CountingRunRepository",
    "InventoryRepositories",
    "InventoryUnitOfWork",
    "ProductRepository",
    "Repository",
    "RepositoryCollection",
    "SessionRepository",
    "UnitOfWork",
    "ZoneRepository",
]
