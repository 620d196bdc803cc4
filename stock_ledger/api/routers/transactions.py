"""Transaction API router composition for ledger mutations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stock_ledger.db import InstrumentNotFoundError, TransactionNotFoundError
from stock_ledger.ledger import LedgerTransactionService, TransactionFields, TransactionMutationResult

from .payloads import (
    api_error_response,
    api_not_found_response,
    api_serialize_aggregate,
    api_serialize_audit_group,
    api_serialize_transaction,
)


class TransactionWriteBody(BaseModel):
    """Request body for transaction insert and update.

    `instrument_id` is required on insert; on update it may only repeat the
    transaction's current instrument.
    """

    instrument_id: int | None = None
    kind: str
    effective_date: str
    quantity: Decimal | None = None
    total_amount: Decimal
    notes: str | None = None

    def api_to_fields(self) -> TransactionFields:
        return TransactionFields(
            kind=self.kind,
            effective_date=self.effective_date,
            quantity=self.quantity,
            total_amount=self.total_amount,
            notes=self.notes,
        )


def api_create_transactions_router(transaction_service: LedgerTransactionService) -> APIRouter:
    """Create transaction router exposing insert, update, delete, and audit APIs.

    Every mutation responds with the recomputed aggregate of the affected instrument.

    Args:
        transaction_service: Ledger service for transaction workflows.

    Returns:
        APIRouter: Router exposing `/transactions` endpoints.

    Raises:
        ValueError: Raised when transaction_service is invalid.
    """

    if transaction_service is None:
        raise ValueError("transaction_service must not be None")

    router = APIRouter(prefix="/transactions", tags=["transactions"])

    @router.post("")
    def api_transaction_create(body: TransactionWriteBody) -> JSONResponse:
        """Insert one transaction and recompute its instrument.

        Returns:
            JSONResponse: Transaction and aggregate payload.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        if body.instrument_id is None:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_TRANSACTION", "instrument_id is required")

        try:
            mutation_result = transaction_service.ledger_transaction_add(
                instrument_id=body.instrument_id,
                fields=body.api_to_fields(),
            )
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_TRANSACTION", str(error))

        return JSONResponse(
            content=_api_serialize_mutation_result(mutation_result),
            status_code=status.HTTP_201_CREATED,
        )

    @router.get("/audit")
    def api_transaction_audit(
        group_by: str = Query(default="date"),
        search: str | None = Query(default=None),
        instrument_id: int | None = Query(default=None),
        kind: str | None = Query(default=None),
        from_date: str | None = Query(default=None),
        to_date: str | None = Query(default=None),
    ) -> JSONResponse:
        """Search transactions across instruments and return them grouped.

        Args:
            group_by: One of `none`, `date`, `instrument`, `kind`, `date_instrument`.
            search: Optional case-insensitive match over symbol, name, and notes.
            instrument_id: Optional instrument filter.
            kind: Optional kind filter.
            from_date: Optional inclusive lower bound in YYYY-MM-DD format.
            to_date: Optional inclusive upper bound in YYYY-MM-DD format.

        Returns:
            JSONResponse: Grouped audit payload.
        """

        try:
            parsed_from_date = None if from_date is None else date.fromisoformat(from_date.strip())
            parsed_to_date = None if to_date is None else date.fromisoformat(to_date.strip())
        except ValueError:
            return api_error_response(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_DATE_RANGE",
                "from_date and to_date must be YYYY-MM-DD dates",
            )

        try:
            groups = transaction_service.ledger_transaction_audit(
                group_by=group_by,
                search_text=search,
                instrument_id=instrument_id,
                kind=kind,
                from_date=parsed_from_date,
                to_date=parsed_to_date,
            )
        except InstrumentNotFoundError as error:
            return api_not_found_response("INSTRUMENT_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_AUDIT_REQUEST", str(error))

        payload = {
            "groups": [api_serialize_audit_group(group) for group in groups],
            "filters": {
                "group_by": group_by,
                "search": search,
                "instrument_id": instrument_id,
                "kind": kind,
                "from_date": None if parsed_from_date is None else parsed_from_date.isoformat(),
                "to_date": None if parsed_to_date is None else parsed_to_date.isoformat(),
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.put("/{transaction_id}")
    def api_transaction_update(transaction_id: int, body: TransactionWriteBody) -> JSONResponse:
        """Replace one transaction's fields and recompute its instrument.

        Args:
            transaction_id: Transaction identifier.
            body: Replacement fields.

        Returns:
            JSONResponse: Transaction and aggregate payload or 404 when absent.
        """

        try:
            mutation_result = transaction_service.ledger_transaction_update(
                transaction_id=transaction_id,
                fields=body.api_to_fields(),
                instrument_id=body.instrument_id,
            )
        except TransactionNotFoundError as error:
            return api_not_found_response("TRANSACTION_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_TRANSACTION", str(error))

        return JSONResponse(content=_api_serialize_mutation_result(mutation_result), status_code=status.HTTP_200_OK)

    @router.delete("/{transaction_id}")
    def api_transaction_delete(transaction_id: int) -> JSONResponse:
        """Delete one transaction and recompute its instrument."""

        try:
            mutation_result = transaction_service.ledger_transaction_delete(transaction_id=transaction_id)
        except TransactionNotFoundError as error:
            return api_not_found_response("TRANSACTION_NOT_FOUND", error)
        except ValueError as error:
            return api_error_response(status.HTTP_400_BAD_REQUEST, "INVALID_TRANSACTION_ID", str(error))

        return JSONResponse(content=_api_serialize_mutation_result(mutation_result), status_code=status.HTTP_200_OK)

    return router


def _api_serialize_mutation_result(mutation_result: TransactionMutationResult) -> dict[str, object]:
    return {
        "transaction": api_serialize_transaction(mutation_result.transaction),
        "aggregate": api_serialize_aggregate(mutation_result.aggregate),
    }


__all__ = ["TransactionWriteBody", "api_create_transactions_router"]
