"""Application configuration helpers."""

from __future__ import annotations

from .counting import CountingConfig, get_counting_config, get_default_shop_id
from .env import positive_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import AUDIT_LOGGER_NAME, configure_logging, get_audit_log_path
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AUDIT_LOGGER_NAME",
    "ConfigurationError",
    "CountingConfig",
    "DatabaseConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "get_audit_log_path",
    "get_counting_config",
    "get_database_config",
    "get_default_shop_id",
    "get_storage_config",
    "positive_int_env",
    "require_env_vars",
]
