"""Health endpoint router composition for app and database checks."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from stock_ledger.db import DatabaseHealthPort

logger = logging.getLogger(__name__)


def api_create_health_router(db_health_service: DatabaseHealthPort) -> APIRouter:
    """Create health-check router with app and database connectivity status.

    Args:
        db_health_service: DB-layer health service interface.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when db_health_service is invalid.
    """

    if db_health_service is None:
        raise ValueError("db_health_service must not be None")

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return application and database health state.

        Returns:
            JSONResponse: Health payload, 503 when the database is unreachable or unmigrated.
        """

        target = db_health_service.db_connection_label()
        try:
            db_health = db_health_service.db_check_health()
        except ConnectionError as error:
            logger.warning("Database health check failed target=%s: %s", target, error)
            payload = {
                "status": "degraded",
                "app": "up",
                "database": "down",
                "detail": str(error),
                "target": target,
            }
            return JSONResponse(content=payload, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

        schema_ready = db_health.status == "ok"
        if not schema_ready:
            logger.warning("Database reachable but ledger schema incomplete target=%s: %s", target, db_health.detail)
        payload = {
            "status": "ok" if schema_ready else "degraded",
            "app": "up",
            "database": db_health.status,
            "detail": db_health.detail,
            "target": target,
        }
        return JSONResponse(
            content=payload,
            status_code=status.HTTP_200_OK if schema_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return router
