"""Transaction volume and portfolio distribution reports over stored rows.

Neither report replays history: volume lists stored transactions as written,
and distribution reads the cached aggregates.
"""

from __future__ import annotations

import logging
from datetime import date

from stock_ledger.db import InstrumentHoldingRecord, InstrumentNotFoundError, LedgerRepositoryPort
from stock_ledger.domain import DECIMAL_ZERO, domain_decimal_quantize_shares, domain_normalize_transaction_kind

from .interfaces import ActivityReportPort, PortfolioHolding, TransactionVolumeEntry

logger = logging.getLogger(__name__)


def analytics_build_portfolio_distribution(holdings: list[InstrumentHoldingRecord]) -> list[PortfolioHolding]:
    """Attach each holding's fraction of the combined invested basis.

    Weights are zero when the combined basis is zero.
    """

    portfolio_invested = sum((holding.total_invested for holding in holdings), DECIMAL_ZERO)
    distribution = []
    for holding in holdings:
        weight = DECIMAL_ZERO
        if portfolio_invested > DECIMAL_ZERO:
            weight = holding.total_invested / portfolio_invested
        distribution.append(
            PortfolioHolding(
                instrument_id=holding.instrument_id,
                symbol=holding.symbol,
                name=holding.name,
                total_shares=holding.total_shares,
                total_invested=holding.total_invested,
                invested_weight=domain_decimal_quantize_shares(weight, "invested_weight"),
            )
        )
    return distribution


class ActivityReportService(ActivityReportPort):
    """Serve transaction volume and holdings distribution reports."""

    def __init__(self, repository: LedgerRepositoryPort):
        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository

    def analytics_transaction_volume(
        self,
        from_date: date,
        to_date: date,
        kind: str | None = None,
        instrument_id: int | None = None,
    ) -> list[TransactionVolumeEntry]:
        """List transactions in an inclusive date range, oldest first.

        Args:
            from_date: Inclusive lower effective-date bound.
            to_date: Inclusive upper effective-date bound.
            kind: Optional kind filter; `DIVIDEND` is accepted as `INCOME`.
            instrument_id: Optional single-instrument filter.

        Returns:
            list[TransactionVolumeEntry]: Rows ordered by effective date then transaction id.

        Raises:
            ValueError: Raised when the range or kind is invalid.
            InstrumentNotFoundError: Raised when the filter instrument is not registered.
            RuntimeError: Raised when the store read fails.
        """

        if not isinstance(from_date, date) or not isinstance(to_date, date):
            raise ValueError("from_date and to_date must be dates")
        if from_date > to_date:
            raise ValueError("from_date must be on or before to_date")
        normalized_kind = None if kind is None else domain_normalize_transaction_kind(kind)
        if instrument_id is not None and self._repository.db_instrument_get_by_id(instrument_id) is None:
            raise InstrumentNotFoundError(f"instrument not found instrument_id={instrument_id}")

        rows = self._repository.db_transaction_search(
            instrument_id=instrument_id,
            kind=normalized_kind,
            from_date=from_date,
            to_date=to_date,
        )
        logger.info(
            "Building transaction volume from=%s to=%s kind=%s instrument_id=%s over %s transactions",
            from_date,
            to_date,
            normalized_kind,
            instrument_id,
            len(rows),
        )

        # Search returns newest first.
        return [
            TransactionVolumeEntry(
                transaction_id=row.transaction.transaction_id,
                effective_date=row.transaction.effective_date,
                kind=row.transaction.kind,
                instrument_id=row.transaction.instrument_id,
                symbol=row.symbol,
                quantity=row.transaction.quantity,
                total_amount=row.transaction.total_amount,
            )
            for row in reversed(rows)
        ]

    def analytics_portfolio_distribution(self) -> list[PortfolioHolding]:
        """List held instruments with their share of the invested basis, ordered by symbol.

        Raises:
            RuntimeError: Raised when the store read fails.
        """

        holdings = self._repository.db_position_holding_list()
        logger.info("Building portfolio distribution over %s holdings", len(holdings))
        return analytics_build_portfolio_distribution(holdings)


__all__ = ["ActivityReportService", "analytics_build_portfolio_distribution"]
