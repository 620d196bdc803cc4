"""Database engine utilities.

The ledger repository relies on PostgreSQL advisory locks, so engines are only
created for PostgreSQL URLs.
"""

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

logger = logging.getLogger(__name__)


def db_create_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for ledger database access.

    Args:
        database_url: SQLAlchemy PostgreSQL database URL.

    Returns:
        Engine: Engine with connection liveness checks enabled.

    Raises:
        ValueError: Raised when the URL is blank, malformed, or not PostgreSQL.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")

    try:
        parsed_url = make_url(database_url.strip())
    except ArgumentError as error:
        raise ValueError("database_url must be a valid SQLAlchemy URL") from error
    if parsed_url.get_backend_name() != "postgresql":
        raise ValueError(f"database_url must target postgresql, got {parsed_url.get_backend_name()}")

    logger.info("Creating database engine target=%s", parsed_url.render_as_string(hide_password=True))
    return create_engine(parsed_url, pool_pre_ping=True)
