"""Shared JSON payload builders for ledger API routers."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse

from stock_ledger.analytics import DaywiseLossDetail, DaywiseProfitBucket, PortfolioHolding, TransactionVolumeEntry
from stock_ledger.db import (
    InstrumentRecord,
    InstrumentTransactionRecord,
    LedgerTransactionRecord,
    PositionAggregateRecord,
)
from stock_ledger.ledger import TransactionAuditGroup
from stock_ledger.domain import domain_decimal_to_text


def api_error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Build the standard error envelope.

    Args:
        status_code: HTTP status code.
        code: Stable machine-readable error code.
        message: Human-readable error message.

    Returns:
        JSONResponse: Error envelope response.
    """

    payload = {
        "status": "error",
        "code": code,
        "message": message,
    }
    return JSONResponse(content=payload, status_code=status_code)


def api_not_found_response(code: str, error: LookupError) -> JSONResponse:
    return api_error_response(status.HTTP_404_NOT_FOUND, code, str(error))


def api_serialize_instrument(
    instrument: InstrumentRecord,
    aggregate: PositionAggregateRecord | None,
) -> dict[str, object]:
    """Serialize one instrument row with its cached aggregate."""

    return {
        "instrument_id": instrument.instrument_id,
        "symbol": instrument.symbol,
        "name": instrument.name,
        "created_at_utc": instrument.created_at_utc.isoformat(),
        "aggregate": None if aggregate is None else api_serialize_aggregate(aggregate),
    }


def api_serialize_transaction(transaction: LedgerTransactionRecord) -> dict[str, object]:
    """Serialize one typed transaction row to JSON payload.

    Args:
        transaction: Typed transaction row.

    Returns:
        dict[str, object]: JSON-serializable transaction payload with decimal strings.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "transaction_id": transaction.transaction_id,
        "instrument_id": transaction.instrument_id,
        "kind": transaction.kind,
        "effective_date": transaction.effective_date.isoformat(),
        "quantity": domain_decimal_to_text(transaction.quantity),
        "total_amount": domain_decimal_to_text(transaction.total_amount),
        "unit_price": domain_decimal_to_text(transaction.unit_price),
        "notes": transaction.notes,
        "created_at_utc": transaction.created_at_utc.isoformat(),
        "updated_at_utc": transaction.updated_at_utc.isoformat(),
    }


def api_serialize_aggregate(aggregate: PositionAggregateRecord) -> dict[str, object]:
    """Serialize one cached aggregate row to JSON payload."""

    return {
        "instrument_id": aggregate.instrument_id,
        "total_shares": domain_decimal_to_text(aggregate.total_shares),
        "total_invested": domain_decimal_to_text(aggregate.total_invested),
        "average_cost": domain_decimal_to_text(aggregate.average_cost),
        "realized_profit": domain_decimal_to_text(aggregate.realized_profit),
        "updated_at_utc": aggregate.updated_at_utc.isoformat(),
    }


def api_serialize_daywise_bucket(bucket: DaywiseProfitBucket) -> dict[str, object]:
    """Serialize one daywise profit bucket with its loss details.

    Args:
        bucket: Typed daywise bucket.

    Returns:
        dict[str, object]: JSON-serializable bucket payload.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "date": bucket.bucket_date.isoformat(),
        "profit": domain_decimal_to_text(bucket.profit),
        "loss_details": [_api_serialize_loss_detail(loss_detail) for loss_detail in bucket.loss_details],
    }


def api_serialize_audit_group(group: TransactionAuditGroup) -> dict[str, object]:
    """Serialize one audit group; member rows carry their instrument symbol and name."""

    return {
        "key": group.key,
        "date": None if group.effective_date is None else group.effective_date.isoformat(),
        "instrument_id": group.instrument_id,
        "symbol": group.symbol,
        "kind": group.kind,
        "transactions": [_api_serialize_instrument_transaction(row) for row in group.transactions],
    }


def api_serialize_volume_entry(entry: TransactionVolumeEntry) -> dict[str, object]:
    return {
        "transaction_id": entry.transaction_id,
        "date": entry.effective_date.isoformat(),
        "kind": entry.kind,
        "instrument_id": entry.instrument_id,
        "symbol": entry.symbol,
        "quantity": domain_decimal_to_text(entry.quantity),
        "total_amount": domain_decimal_to_text(entry.total_amount),
    }


def api_serialize_portfolio_holding(holding: PortfolioHolding) -> dict[str, object]:
    return {
        "instrument_id": holding.instrument_id,
        "symbol": holding.symbol,
        "name": holding.name,
        "total_shares": domain_decimal_to_text(holding.total_shares),
        "total_invested": domain_decimal_to_text(holding.total_invested),
        "invested_weight": domain_decimal_to_text(holding.invested_weight),
    }


def _api_serialize_instrument_transaction(row: InstrumentTransactionRecord) -> dict[str, object]:
    payload = api_serialize_transaction(row.transaction)
    payload["symbol"] = row.symbol
    payload["name"] = row.name
    return payload


def _api_serialize_loss_detail(loss_detail: DaywiseLossDetail) -> dict[str, object]:
    return {
        "transaction_id": loss_detail.transaction_id,
        "instrument_id": loss_detail.instrument_id,
        "symbol": loss_detail.symbol,
        "quantity": domain_decimal_to_text(loss_detail.quantity),
        "unit_price": domain_decimal_to_text(loss_detail.unit_price),
        "average_cost_at_sale": domain_decimal_to_text(loss_detail.average_cost_at_sale),
        "total_amount": domain_decimal_to_text(loss_detail.total_amount),
        "loss": domain_decimal_to_text(loss_detail.loss),
    }


__all__ = [
    "api_error_response",
    "api_not_found_response",
    "api_serialize_aggregate",
    "api_serialize_audit_group",
    "api_serialize_daywise_bucket",
    "api_serialize_instrument",
    "api_serialize_portfolio_holding",
    "api_serialize_transaction",
    "api_serialize_volume_entry",
]
