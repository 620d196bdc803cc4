"""Daywise realized-profit report built from an independent ledger replay.

The cached aggregate only holds the final average cost, while a report needs
the running average at every sale inside the range, so each instrument is
replayed from zero here.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from stock_ledger.db import InstrumentNotFoundError, LedgerRepositoryPort
from stock_ledger.domain import (
    DECIMAL_ZERO,
    TRANSACTION_KIND_INCOME,
    TRANSACTION_KIND_SELL,
    domain_decimal_quantize_currency,
    domain_decimal_quantize_shares,
)
from stock_ledger.ledger import ReplayStep, ReplayTransactionInput, replay_input_from_record, replay_iterate_transactions

from .interfaces import AnalyticsPort, DaywiseLossDetail, DaywiseProfitBucket

logger = logging.getLogger(__name__)


def analytics_build_daywise_report(
    transactions: Iterable[ReplayTransactionInput],
    from_date: date,
    to_date: date,
    symbols_by_instrument: Mapping[int, str] | None = None,
) -> list[DaywiseProfitBucket]:
    """Bucket in-range SELL and INCOME results by effective date.

    BUY events and events before `from_date` never reach a bucket but still
    advance each instrument's running state. Events after `to_date` are ignored.

    Args:
        transactions: Replay inputs for any number of instruments.
        from_date: Inclusive lower effective-date bound.
        to_date: Inclusive upper effective-date bound.
        symbols_by_instrument: Optional instrument id to symbol lookup.

    Returns:
        list[DaywiseProfitBucket]: Sparse date-ascending buckets; profit at currency scale.

    Raises:
        ValueError: Raised when `from_date` is after `to_date` or history fails replay validation.
    """

    if not isinstance(from_date, date) or not isinstance(to_date, date):
        raise ValueError("from_date and to_date must be dates")
    if from_date > to_date:
        raise ValueError("from_date must be on or before to_date")
    if transactions is None:
        raise ValueError("transactions must not be None")

    symbol_lookup = symbols_by_instrument or {}
    transactions_by_instrument: dict[int, list[ReplayTransactionInput]] = defaultdict(list)
    for transaction in transactions:
        if transaction.effective_date <= to_date:
            transactions_by_instrument[transaction.instrument_id].append(transaction)

    profit_by_date: dict[date, Decimal] = defaultdict(lambda: DECIMAL_ZERO)
    loss_details_by_date: dict[date, list[DaywiseLossDetail]] = defaultdict(list)

    for instrument_id in sorted(transactions_by_instrument):
        for step in replay_iterate_transactions(transactions_by_instrument[instrument_id]):
            event_date = step.transaction.effective_date
            if event_date < from_date:
                continue

            if step.transaction.kind == TRANSACTION_KIND_INCOME:
                profit_by_date[event_date] += step.realized
            elif step.transaction.kind == TRANSACTION_KIND_SELL:
                profit_by_date[event_date] += step.realized
                if step.realized < DECIMAL_ZERO:
                    loss_details_by_date[event_date].append(
                        _analytics_build_loss_detail(step, symbol_lookup.get(instrument_id))
                    )

    return [
        DaywiseProfitBucket(
            bucket_date=bucket_date,
            profit=domain_decimal_quantize_currency(profit_by_date[bucket_date], "profit"),
            loss_details=tuple(loss_details_by_date.get(bucket_date, ())),
        )
        for bucket_date in sorted(profit_by_date)
    ]


def _analytics_build_loss_detail(step: ReplayStep, symbol: str | None) -> DaywiseLossDetail:
    quantity = step.transaction.quantity
    return DaywiseLossDetail(
        transaction_id=step.transaction.insertion_sequence,
        instrument_id=step.transaction.instrument_id,
        symbol=symbol,
        quantity=quantity,
        unit_price=domain_decimal_quantize_shares(step.transaction.total_amount / quantity, "unit_price"),
        average_cost_at_sale=domain_decimal_quantize_shares(step.state_before.average_cost, "average_cost_at_sale"),
        total_amount=step.transaction.total_amount,
        loss=domain_decimal_quantize_currency(step.realized, "loss"),
    )


class DaywiseReportService(AnalyticsPort):
    """Read ledger history from the store and build daywise reports."""

    def __init__(self, repository: LedgerRepositoryPort):
        """Initialize daywise report service.

        Args:
            repository: DB-layer ledger repository.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when repository is invalid.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository

    def analytics_daywise(
        self,
        from_date: date,
        to_date: date,
        instrument_id: int | None = None,
    ) -> list[DaywiseProfitBucket]:
        """Build date-bucketed realized profit over an inclusive date range.

        Args:
            from_date: Inclusive lower effective-date bound.
            to_date: Inclusive upper effective-date bound.
            instrument_id: Optional single-instrument filter.

        Returns:
            list[DaywiseProfitBucket]: Sparse date-ascending buckets.

        Raises:
            ValueError: Raised when the range is invalid or history fails replay validation.
            InstrumentNotFoundError: Raised when the filter instrument is not registered.
            RuntimeError: Raised when the store read fails.
        """

        if isinstance(from_date, date) and isinstance(to_date, date) and from_date > to_date:
            raise ValueError("from_date must be on or before to_date")

        if instrument_id is not None and self._repository.db_instrument_get_by_id(instrument_id) is None:
            raise InstrumentNotFoundError(f"instrument not found instrument_id={instrument_id}")

        # Symbols come from the same statement as the rows.
        report_rows = self._repository.db_transaction_list_through_date(
            through_date=to_date,
            instrument_id=instrument_id,
        )
        logger.info(
            "Building daywise report from=%s to=%s instrument_id=%s over %s transactions",
            from_date,
            to_date,
            instrument_id,
            len(report_rows),
        )

        return analytics_build_daywise_report(
            transactions=[replay_input_from_record(row.transaction) for row in report_rows],
            from_date=from_date,
            to_date=to_date,
            symbols_by_instrument={row.transaction.instrument_id: row.symbol for row in report_rows},
        )


__all__ = ["DaywiseReportService", "analytics_build_daywise_report"]
