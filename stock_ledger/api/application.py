"""FastAPI application factory for the position ledger service."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stock_ledger.analytics import ActivityReportPort, AnalyticsPort
from stock_ledger.config import AppSettings
from stock_ledger.db import DatabaseHealthPort
from stock_ledger.ledger import LedgerRecomputePort, LedgerTransactionService

from .routers import (
    api_create_aggregates_router,
    api_create_health_router,
    api_create_instruments_router,
    api_create_reports_router,
    api_create_transactions_router,
)
from .routers.payloads import api_error_response


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    transaction_service: LedgerTransactionService,
    recompute_service: LedgerRecomputePort,
    report_service: AnalyticsPort,
    activity_service: ActivityReportPort,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Database health service used by health endpoints.
        transaction_service: Ledger service for instrument and transaction workflows.
        recompute_service: Aggregate recompute coordinator.
        report_service: Daywise report service.
        activity_service: Transaction volume and portfolio distribution service.

    Returns:
        FastAPI: Framework application instance with every ledger router mounted.

    Raises:
        ValueError: Raised when a router dependency is invalid.
    """
    application = FastAPI(title="Stock Position Ledger")

    @application.exception_handler(RequestValidationError)
    async def api_request_validation_error(_request: Request, error: RequestValidationError) -> JSONResponse:
        """Report malformed request bodies and parameters as validation faults."""

        messages = [
            f"{'.'.join(str(location) for location in detail.get('loc', ()))}: {detail.get('msg', '')}"
            for detail in error.errors()
        ]
        return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "; ".join(messages))

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return a minimal service descriptor."""

        return {
            "service": "stock-position-ledger",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(
        api_create_instruments_router(settings=settings, transaction_service=transaction_service)
    )
    application.include_router(api_create_transactions_router(transaction_service=transaction_service))
    application.include_router(api_create_aggregates_router(recompute_service=recompute_service))
    application.include_router(
        api_create_reports_router(report_service=report_service, activity_service=activity_service)
    )

    return application
