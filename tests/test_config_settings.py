"""Regression tests for runtime settings validation and logging setup."""

from __future__ import annotations

import logging

import pytest

from stock_ledger.config import (
    LOGGER_ROOT_NAME,
    SettingsLoadError,
    config_configure_logging,
    config_load_database_url,
    config_load_settings,
)


def test_settings_load_normalizes_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", " postgresql+psycopg://ledger@localhost/ledger ")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = config_load_settings()

    assert settings.database_url == "postgresql+psycopg://ledger@localhost/ledger"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [("LOG_LEVEL", "chatty"), ("API_MAX_LIMIT", "1"), ("DATABASE_URL", "   "), ("APPLICATION_PORT", "0")],
)
def test_settings_load_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    """Wrap validation failures in SettingsLoadError."""

    monkeypatch.setenv(name, value)

    with pytest.raises(SettingsLoadError):
        config_load_settings()


def test_database_url_load_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://migrations@localhost/ledger")

    assert config_load_database_url() == "postgresql+psycopg://migrations@localhost/ledger"


def test_configure_logging_installs_single_stdout_handler() -> None:
    """Replace handlers on repeated configuration instead of stacking them."""

    package_logger = logging.getLogger(LOGGER_ROOT_NAME)
    previous_handlers = list(package_logger.handlers)
    previous_level = package_logger.level
    previous_propagate = package_logger.propagate
    try:
        config_configure_logging("INFO")
        configured_logger = config_configure_logging("debug")

        assert configured_logger is package_logger
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.DEBUG
        assert "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s" == package_logger.handlers[0].formatter._fmt
        with pytest.raises(ValueError):
            config_configure_logging("LOUD")
    finally:
        package_logger.handlers = previous_handlers
        package_logger.setLevel(previous_level)
        package_logger.propagate = previous_propagate
