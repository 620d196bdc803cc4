"""Process-wide logging configuration for runtime entrypoints."""

import logging
import sys

LOGGER_ROOT_NAME = "stock_ledger"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s"


def config_configure_logging(log_level: str = "INFO") -> logging.Logger:
    """Attach one stdout handler to the package logger tree.

    Args:
        log_level: Level name such as `INFO` or `DEBUG`.

    Returns:
        logging.Logger: Configured package root logger.

    Raises:
        ValueError: Raised when log level name is unknown.
    """

    resolved_level = logging.getLevelName(log_level.strip().upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"unsupported log_level={log_level}")

    logger = logging.getLogger(LOGGER_ROOT_NAME)
    # Repeated calls (tests, CLI re-entry) must not stack handlers.
    if logger.hasHandlers():
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved_level)
    logger.propagate = False
    return logger
