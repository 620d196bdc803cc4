"""Database health service for connectivity and ledger schema checks."""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from stock_ledger.domain import HealthStatus

from .interfaces import DatabaseHealthPort

_LEDGER_TABLES = ("instrument", "ledger_transaction", "position_aggregate")


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Report database reachability and whether the ledger schema is migrated."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        """Return the target database URL with the password masked."""

        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Check connectivity and the presence of every ledger table.

        Returns:
            HealthStatus: `ok` when migrated, `schema_missing` when tables are absent.

        Raises:
            ConnectionError: Raised when the database cannot be reached.
        """

        try:
            with self._engine.connect() as connection:
                missing_tables = [
                    table_name
                    for table_name in _LEDGER_TABLES
                    if connection.execute(
                        text("SELECT to_regclass(:table_name)"),
                        {"table_name": table_name},
                    ).scalar_one()
                    is None
                ]
        except SQLAlchemyError as error:
            raise ConnectionError("database connectivity check failed") from error

        if missing_tables:
            return HealthStatus(
                status="schema_missing",
                detail=f"missing ledger tables: {', '.join(missing_tables)}; run alembic upgrade head",
            )
        return HealthStatus(status="ok", detail="database connectivity and ledger schema verified")


__all__ = ["SQLAlchemyDatabaseHealthService"]
