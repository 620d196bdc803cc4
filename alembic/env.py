"""Alembic environment for the ledger schema.

The database URL comes from `-x database_url=...` when given, otherwise from
`DATABASE_URL` through the runtime settings loader.
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from logging.config import fileConfig

from alembic import context

from stock_ledger.config import config_load_database_url
from stock_ledger.db import db_create_engine

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)


def _alembic_resolve_database_url() -> str:
    override_url = context.get_x_argument(as_dictionary=True).get("database_url", "").strip()
    return override_url or config_load_database_url()


def _alembic_migration_options() -> dict:
    # No ORM metadata; revisions are written by hand.
    return {"target_metadata": None, "compare_type": True, "transaction_per_migration": True}


def alembic_run_offline(database_url: str) -> None:
    """Emit migration SQL for the ledger schema without connecting."""

    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_alembic_migration_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def alembic_run_online(database_url: str) -> None:
    """Apply ledger schema migrations against a live PostgreSQL database."""

    engine = db_create_engine(database_url)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **_alembic_migration_options())
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    alembic_run_offline(_alembic_resolve_database_url())
else:
    alembic_run_online(_alembic_resolve_database_url())
