"""Instrument API router composition for registration, detail, and transaction history."""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stock_ledger.config import AppSettings
from stock_ledger.db import InstrumentAlreadyExistsError, InstrumentNotFoundError
from stock_ledger.ledger import LedgerTransactionService

from .payloads import api_error_response, api_not_found_response, api_serialize_instrument, api_serialize_transaction


class InstrumentCreateBody(BaseModel):
    """Request body for instrument registration."""

    symbol: str
    name: str


def api_create_instruments_router(
    settings: AppSettings,
    transaction_service: LedgerTransactionService,
) -> APIRouter:
    """Create instrument router exposing registration and read APIs.

    Args:
        settings: Runtime settings used for pagination defaults.
        transaction_service: Ledger service for instrument and transaction workflows.

    Returns:
        APIRouter: Router exposing `/instruments` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if transaction_service is None:
        raise ValueError("transaction_service must not be None")

    router = APIRouter(prefix="/instruments", tags=["instruments"])

    @router.post("")
    def api_instrument_create(body: InstrumentCreateBody) -> JSONResponse:
        """Register one instrument with a zero-state aggregate.

        Returns:
            JSONResponse: Created instrument payload, 409 on duplicate symbol.
        """

        try:
            instrument = transaction_service.ledger_instrument_register(symbol=body.symbol, name=body.name)
        except InstrumentAlreadyExistsError as error:
            return api_error_response(status.HTTP_409_CONFLICT, "INSTRUMENT_ALREADY_EXISTS", str(error))
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_INSTRUMENT", str(error))

        position = transaction_service.ledger_instrument_get(instrument.instrument_id)
        return JSONResponse(
            content=api_serialize_instrument(position.instrument, position.aggregate),
            status_code=status.HTTP_201_CREATED,
        )

    @router.get("")
    def api_instrument_list() -> JSONResponse:
        """List instruments ordered by symbol with cached aggregates."""

        positions = transaction_service.ledger_instrument_list()
        payload = {
            "items": [api_serialize_instrument(position.instrument, position.aggregate) for position in positions],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/{instrument_id}")
    def api_instrument_detail(instrument_id: int) -> JSONResponse:
        """Return one instrument with its cached aggregate.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            JSONResponse: Instrument payload or 404 when absent.
        """

        try:
            position = transaction_service.ledger_instrument_get(instrument_id)
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_INSTRUMENT_ID", str(error))

        return JSONResponse(
            content=api_serialize_instrument(position.instrument, position.aggregate),
            status_code=status.HTTP_200_OK,
        )

    @router.get("/{instrument_id}/transactions")
    def api_instrument_transaction_list(
        instrument_id: int,
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """List one page of an instrument's transactions, newest first.

        Args:
            instrument_id: Instrument identifier.
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            JSONResponse: Transaction list envelope payload.

        Raises:
            RuntimeError: Raised when repository read fails.
        """

        applied_limit = min(limit, settings.api_max_limit)
        try:
            transaction_rows, total = transaction_service.ledger_transaction_list(
                instrument_id=instrument_id,
                limit=applied_limit,
                offset=offset,
            )
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_INSTRUMENT_ID", str(error))

        payload = {
            "items": [api_serialize_transaction(transaction_row) for transaction_row in transaction_rows],
            "page": {
                "limit": limit,
                "applied_limit": applied_limit,
                "offset": offset,
                "returned": len(transaction_rows),
                "total": total,
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


__all__ = ["InstrumentCreateBody", "api_create_instruments_router"]
