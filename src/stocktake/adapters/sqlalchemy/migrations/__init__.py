"""Utilities for managing Alembic migrations within the SQLAlchemy adapter."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from stocktake.config import get_database_config

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


def _load_pyproject_options() -> dict[str, str]:
    """Load Alembic configuration values from pyproject.toml."""

    try:
        with PYPROJECT_PATH.open("rb") as pyproject_file:
            document = tomllib.load(pyproject_file)
    except FileNotFoundError:
        return {}

    tool_section = document.get("tool", {})
    alembic_section = tool_section.get("alembic", {})
    options: dict[str, str] = {}
    for key, value in alembic_section.items():
        options[str(key)] = str(value)
    return options


def _build_config() -> Config:
    """Return an Alembic Config seeded from pyproject settings."""

    config = Config()
    options = _load_pyproject_options()

    script_location = options.get("script_location")
    script_path = MIGRATIONS_PATH
    if script_location is not None:
        candidate = Path(script_location)
        candidate = candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
        if candidate.is_dir():
            script_path = candidate
    config.set_main_option("script_location", str(script_path))

    prepend_sys_path = options.get("prepend_sys_path", ".")
    prepend_path = Path(prepend_sys_path)
    resolved_prepend = (
        prepend_path if prepend_path.is_absolute() else (PROJECT_ROOT / prepend_path)
    ).resolve()
    config.set_main_option("prepend_sys_path", str(resolved_prepend))

    for key, value in options.items():
        if key in {"script_location", "prepend_sys_path"}:
            continue
        config.set_main_option(key, value)

    config.attributes["pyproject_options"] = options
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision."""

    config = _build_config()
    if engine is not None:
        log.info("Upgrading schema of %s to head", engine.url.render_as_string())
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    uri = database_uri or get_database_config().uri
    config.set_main_option("sqlalchemy.url", uri)
    config.attributes["database_uri"] = uri
    command.upgrade(config, "head")
