"""Counting defaults for lifecycle operations and projections."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from .env import positive_int_env, require_env_vars
from .errors import ConfigurationError

DEFAULT_COMPLETED_RUNS_LIMIT = 50
DEFAULT_UNKNOWN_SKU_PREFIX = "UNK-"
DEFAULT_SKU_MAX_LENGTH = 32
SHOP_ID_ENV = "STOCKTAKE_SHOP_ID"


@dataclass(frozen=True, slots=True)
class CountingConfig:
    completed_runs_limit: int = DEFAULT_COMPLETED_RUNS_LIMIT
    unknown_sku_prefix: str = DEFAULT_UNKNOWN_SKU_PREFIX
    sku_max_length: int = DEFAULT_SKU_MAX_LENGTH


def get_counting_config() -> CountingConfig:
    return CountingConfig(
        completed_runs_limit=positive_int_env(
            "STOCKTAKE_COMPLETED_RUNS_LIMIT", DEFAULT_COMPLETED_RUNS_LIMIT
        ),
    )


def get_default_shop_id() -> UUID:
    """Return the shop configured through ``STOCKTAKE_SHOP_ID``."""

    raw = require_env_vars([SHOP_ID_ENV])[SHOP_ID_ENV]
    try:
        return UUID(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"{SHOP_ID_ENV} must be a UUID, got {raw!r}",
            variable=SHOP_ID_ENV,
        ) from exc
