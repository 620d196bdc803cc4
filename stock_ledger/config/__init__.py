"""Configuration package for runtime settings and startup validation."""

from .logging_setup import LOGGER_ROOT_NAME, config_configure_logging
from .settings import AppSettings, SettingsLoadError, config_load_database_url, config_load_settings

__all__ = [
    "AppSettings",
    "LOGGER_ROOT_NAME",
    "SettingsLoadError",
    "config_configure_logging",
    "config_load_settings",
    "config_load_database_url",
]
