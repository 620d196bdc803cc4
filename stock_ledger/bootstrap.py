"""Application bootstrap wiring for startup validation and dependency assembly."""

from dataclasses import dataclass

from fastapi import FastAPI

from stock_ledger.analytics import ActivityReportService, DaywiseReportService
from stock_ledger.api import create_api_application
from stock_ledger.config import AppSettings, config_configure_logging, config_load_settings
from stock_ledger.db import SQLAlchemyDatabaseHealthService, SQLAlchemyLedgerRepository, db_create_engine
from stock_ledger.ledger import InstrumentLockRegistry, LedgerTransactionService, PositionAggregateRecomputeService


@dataclass(frozen=True)
class LedgerServices:
    """Runtime service graph sharing one repository and one lock registry.

    Attributes:
        settings: Validated runtime settings.
        db_health_service: Database health service.
        recompute_service: Aggregate recompute coordinator.
        transaction_service: Instrument and transaction mutation service.
        report_service: Daywise report service.
        activity_service: Transaction volume and portfolio distribution service.
    """

    settings: AppSettings
    db_health_service: SQLAlchemyDatabaseHealthService
    recompute_service: PositionAggregateRecomputeService
    transaction_service: LedgerTransactionService
    report_service: DaywiseReportService
    activity_service: ActivityReportService


def bootstrap_create_services(settings: AppSettings | None = None) -> LedgerServices:
    """Assemble ledger services after validating startup configuration.

    Args:
        settings: Optional pre-loaded settings; loaded from environment when omitted.

    Returns:
        LedgerServices: Fully wired service graph.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    config_configure_logging(resolved_settings.log_level)

    engine = db_create_engine(database_url=resolved_settings.database_url)
    repository = SQLAlchemyLedgerRepository(engine=engine)
    recompute_service = PositionAggregateRecomputeService(
        repository=repository,
        lock_registry=InstrumentLockRegistry(),
    )
    return LedgerServices(
        settings=resolved_settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
        recompute_service=recompute_service,
        transaction_service=LedgerTransactionService(repository=repository, recompute_service=recompute_service),
        report_service=DaywiseReportService(repository=repository),
        activity_service=ActivityReportService(repository=repository),
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    services = bootstrap_create_services(settings)
    return create_api_application(
        settings=services.settings,
        db_health_service=services.db_health_service,
        transaction_service=services.transaction_service,
        recompute_service=services.recompute_service,
        report_service=services.report_service,
        activity_service=services.activity_service,
    )
