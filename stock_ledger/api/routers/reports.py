"""Report API router composition for realized profit and activity reports."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from stock_ledger.analytics import ActivityReportPort, AnalyticsPort
from stock_ledger.db import InstrumentNotFoundError

from .payloads import (
    api_error_response,
    api_not_found_response,
    api_serialize_daywise_bucket,
    api_serialize_portfolio_holding,
    api_serialize_volume_entry,
)


def api_create_reports_router(report_service: AnalyticsPort, activity_service: ActivityReportPort) -> APIRouter:
    """Create report router exposing profit, volume, and distribution reports.

    Args:
        report_service: Analytics-layer daywise report service.
        activity_service: Analytics-layer volume and distribution service.

    Returns:
        APIRouter: Router exposing `/reports` endpoints.

    Raises:
        ValueError: Raised when a service is invalid.
    """

    if report_service is None:
        raise ValueError("report_service must not be None")
    if activity_service is None:
        raise ValueError("activity_service must not be None")

    router = APIRouter(prefix="/reports", tags=["reports"])

    @router.get("/daywise")
    def api_report_daywise(
        from_date: str = Query(),
        to_date: str = Query(),
        instrument_id: int | None = Query(default=None),
    ) -> JSONResponse:
        """Return sparse date-ascending realized profit buckets.

        Args:
            from_date: Inclusive lower bound in YYYY-MM-DD format.
            to_date: Inclusive upper bound in YYYY-MM-DD format.
            instrument_id: Optional single-instrument filter.

        Returns:
            JSONResponse: Report envelope payload.

        Raises:
            RuntimeError: Raised when repository read fails.
        """

        date_range = _api_parse_date_range(from_date, to_date)
        if date_range is None:
            return _api_invalid_date_range_response()
        parsed_from_date, parsed_to_date = date_range

        try:
            buckets = report_service.analytics_daywise(
                from_date=parsed_from_date,
                to_date=parsed_to_date,
                instrument_id=instrument_id,
            )
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_REPORT_REQUEST", str(error))

        payload = {
            "items": [api_serialize_daywise_bucket(bucket) for bucket in buckets],
            "filters": {
                "from_date": parsed_from_date.isoformat(),
                "to_date": parsed_to_date.isoformat(),
                "instrument_id": instrument_id,
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/transaction-volume")
    def api_report_transaction_volume(
        from_date: str = Query(),
        to_date: str = Query(),
        kind: str | None = Query(default=None),
        instrument_id: int | None = Query(default=None),
    ) -> JSONResponse:
        """Return transactions in an inclusive date range, oldest first."""

        date_range = _api_parse_date_range(from_date, to_date)
        if date_range is None:
            return _api_invalid_date_range_response()
        parsed_from_date, parsed_to_date = date_range

        try:
            entries = activity_service.analytics_transaction_volume(
                from_date=parsed_from_date,
                to_date=parsed_to_date,
                kind=kind,
                instrument_id=instrument_id,
            )
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_REPORT_REQUEST", str(error))

        payload = {
            "items": [api_serialize_volume_entry(entry) for entry in entries],
            "filters": {
                "from_date": parsed_from_date.isoformat(),
                "to_date": parsed_to_date.isoformat(),
                "kind": kind,
                "instrument_id": instrument_id,
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/portfolio-distribution")
    def api_report_portfolio_distribution() -> JSONResponse:
        """Return held instruments with shares, invested basis, and basis weight."""

        holdings = activity_service.analytics_portfolio_distribution()
        return JSONResponse(
            content={"items": [api_serialize_portfolio_holding(holding) for holding in holdings]},
            status_code=status.HTTP_200_OK,
        )

    return router


def _api_parse_date_range(from_date: str, to_date: str) -> tuple[date, date] | None:
    try:
        return date.fromisoformat(from_date.strip()), date.fromisoformat(to_date.strip())
    except ValueError:
        return None


def _api_invalid_date_range_response() -> JSONResponse:
    return api_error_response(
        status.HTTP_400_BAD_REQUEST,
        "INVALID_DATE_RANGE",
        "from_date and to_date must be YYYY-MM-DD dates",
    )


__all__ = ["api_create_reports_router"]
