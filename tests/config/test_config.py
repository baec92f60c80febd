from __future__ import annotations

import logging
import uuid
from pathlib import Path  # noqa: TC003

import pytest

from stocktake.adapters.audit import LoggingAuditSink
from stocktake.config import (
    AUDIT_LOGGER_NAME,
    ConfigurationError,
    CountingConfig,
    MissingConfigurationError,
    configure_logging,
    get_audit_log_path,
    get_counting_config,
    get_database_config,
    get_default_shop_id,
    get_storage_config,
    positive_int_env,
    require_env_vars,
)
from stocktake.config.storage import DEFAULT_DB_FILENAME


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    assert exc.value.names == ("MISSING_A", "MISSING_B")
    assert exc.value.variable is None


@pytest.mark.parametrize(("raw", "expected"), [(None, 50), ("  ", 50), ("7", 7)])
def test_positive_int_env_falls_back_to_default(
    monkeypatch: pytest.MonkeyPatch,
    raw: str | None,
    expected: int,
) -> None:
    if raw is None:
        monkeypatch.delenv("EXAMPLE_LIMIT", raising=False)
    else:
        monkeypatch.setenv("EXAMPLE_LIMIT", raw)

    assert positive_int_env("EXAMPLE_LIMIT", 50) == expected


@pytest.mark.parametrize("raw", ["zero", "0", "-3"])
def test_positive_int_env_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
) -> None:
    monkeypatch.setenv("EXAMPLE_LIMIT", raw)

    with pytest.raises(ConfigurationError) as exc:
        positive_int_env("EXAMPLE_LIMIT", 50)

    assert exc.value.variable == "EXAMPLE_LIMIT"


def test_counting_config_reads_completed_runs_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOCKTAKE_COMPLETED_RUNS_LIMIT", "12")

    config = get_counting_config()

    assert config == CountingConfig(completed_runs_limit=12)
    assert config.unknown_sku_prefix == "UNK-"
    assert config.sku_max_length == 32


def test_default_shop_id_requires_a_uuid(monkeypatch: pytest.MonkeyPatch) -> None:
    shop_id = uuid.uuid4()
    monkeypatch.setenv("STOCKTAKE_SHOP_ID", f" {shop_id} ")
    assert get_default_shop_id() == shop_id

    monkeypatch.setenv("STOCKTAKE_SHOP_ID", "shop-1")
    with pytest.raises(ConfigurationError) as invalid:
        get_default_shop_id()
    assert invalid.value.variable == "STOCKTAKE_SHOP_ID"

    monkeypatch.delenv("STOCKTAKE_SHOP_ID")
    with pytest.raises(MissingConfigurationError) as missing:
        get_default_shop_id()
    assert missing.value.variable == "STOCKTAKE_SHOP_ID"


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("STOCKTAKE_DATA_DIR", str(custom))

    config = get_storage_config()

    assert config.resolve_data_dir() == custom.resolve()


def test_database_config_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    assert get_database_config().uri == "sqlite:///override.db"


def test_database_config_creates_data_dir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("STOCKTAKE_DATA_DIR", str(tmp_path / "data-dir"))

    uri = get_database_config().uri

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_audit_log_path_comes_from_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("STOCKTAKE_AUDIT_LOG", raising=False)
    assert get_audit_log_path() is None

    monkeypatch.setenv("STOCKTAKE_AUDIT_LOG", f" {tmp_path / 'audit.log'} ")
    assert get_audit_log_path() == tmp_path / "audit.log"


def test_configure_logging_appends_audit_entries_to_file(tmp_path: Path) -> None:
    audit_file = tmp_path / "logs" / "audit.log"
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    existing = list(audit_logger.handlers)
    level = audit_logger.level

    try:
        configure_logging(audit_log=audit_file)
        configure_logging(audit_log=audit_file)
        added = [handler for handler in audit_logger.handlers if handler not in existing]

        LoggingAuditSink().record(
            "Alice started A1",
            actor="Alice",
            category="inventories.start.success",
        )
        for handler in added:
            handler.flush()

        assert len(added) == 1
        [line] = audit_file.read_text(encoding="utf-8").splitlines()
        assert line.endswith("inventories.start.success actor=Alice Alice started A1")
    finally:
        for handler in audit_logger.handlers[:]:
            if handler not in existing:
                audit_logger.removeHandler(handler)
                handler.close()
        audit_logger.setLevel(level)
