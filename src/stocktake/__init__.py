"""Inventory count coordination: run locking, reconciliation and projections."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stocktake")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
