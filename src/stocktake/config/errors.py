"""Errors raised while reading stocktake settings from the environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """An environment setting is present but unusable.

    ``variable`` names the offending environment variable when there is a single one.
    """

    def __init__(self, message: str, *, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable


class MissingConfigurationError(ConfigurationError):
    """Required environment settings are absent or blank."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(sorted(names))
        super().__init__(
            f"Missing configuration for: {', '.join(self.names)}",
            variable=self.names[0] if len(self.names) == 1 else None,
        )
