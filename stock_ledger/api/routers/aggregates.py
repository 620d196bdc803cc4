"""Aggregate API router composition for cached position reads and recompute triggers."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from stock_ledger.db import InstrumentNotFoundError
from stock_ledger.ledger import LedgerRecomputePort

from .payloads import api_error_response, api_not_found_response, api_serialize_aggregate


def api_create_aggregates_router(recompute_service: LedgerRecomputePort) -> APIRouter:
    """Create aggregate router exposing read and recompute APIs.

    Args:
        recompute_service: Ledger-layer aggregate recompute coordinator.

    Returns:
        APIRouter: Router exposing `/aggregates` endpoints.

    Raises:
        ValueError: Raised when recompute_service is invalid.
    """

    if recompute_service is None:
        raise ValueError("recompute_service must not be None")

    router = APIRouter(prefix="/aggregates", tags=["aggregates"])

    @router.post("/recompute")
    def api_aggregate_recompute_all() -> JSONResponse:
        """Recompute every instrument; failures are reported per instrument.

        Returns:
            JSONResponse: Batch summary payload.

        Raises:
            RuntimeError: Raised when the instrument list cannot be read.
        """

        recompute_result = recompute_service.ledger_recompute_all()
        payload = {
            "succeeded": recompute_result.succeeded,
            "failed": len(recompute_result.errors),
            "errors": [
                {"instrument_id": error.instrument_id, "message": error.message}
                for error in recompute_result.errors
            ],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/{instrument_id}")
    def api_aggregate_detail(instrument_id: int) -> JSONResponse:
        """Return the cached aggregate of one instrument.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            JSONResponse: Aggregate payload or 404 when absent.
        """

        try:
            aggregate = recompute_service.ledger_get_aggregate(instrument_id)
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_INSTRUMENT_ID", str(error))

        if aggregate is None:
            return api_error_response(
                status.HTTP_404_NOT_FOUND,
                "AGGREGATE_NOT_FOUND",
                f"aggregate not found instrument_id={instrument_id}",
            )
        return JSONResponse(content=api_serialize_aggregate(aggregate), status_code=status.HTTP_200_OK)

    @router.post("/{instrument_id}/recompute")
    def api_aggregate_recompute(instrument_id: int) -> JSONResponse:
        """Replay one instrument from zero and replace its cached aggregate.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            JSONResponse: Replacement aggregate payload.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        try:
            aggregate = recompute_service.ledger_recompute_instrument(instrument_id)
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_LEDGER_DATA", str(error))

        return JSONResponse(content=api_serialize_aggregate(aggregate), status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_aggregates_router"]
