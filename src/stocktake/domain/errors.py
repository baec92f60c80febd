"""Error taxonomy raised by inventory operations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any


class InventoryError(Exception):
    """Base class for business-rule failures of inventory operations."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Mapping[str, Any] = MappingProxyType(dict(details or {}))


class NotFoundError(InventoryError):
    """A referenced zone, run or product does not exist (or is out of scope)."""


class ConflictError(InventoryError):
    """The request contradicts the current state (busy zone, foreign owner...)."""


class BadRequestError(InventoryError):
    """The request itself is malformed."""


@dataclass(frozen=True, slots=True)
class FieldFailure:
    field: str
    message: str


class ValidationError(BadRequestError):
    """One or more submitted fields failed validation."""

    def __init__(self, failures: tuple[FieldFailure, ...], message: str | None = None) -> None:
        summary = message or "; ".join(
            f"{failure.field}: {failure.message}" for failure in failures
        )
        super().__init__(
            summary,
            details={"failures": {failure.field: failure.message for failure in failures}},
        )
        self.failures = failures
