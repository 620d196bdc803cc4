"""Typed interfaces for analytics-layer aggregations."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class DaywiseLossDetail:
    """One in-range SELL that realized a loss.

    Attributes:
        transaction_id: Loss-making SELL transaction identifier.
        instrument_id: Instrument identifier.
        symbol: Instrument symbol, or None when unknown to the caller.
        quantity: Shares sold.
        unit_price: Sale proceeds per share.
        average_cost_at_sale: Running average cost immediately before the sale.
        total_amount: Sale proceeds.
        loss: Realized amount of the sale, always negative.
    """

    transaction_id: int
    instrument_id: int
    symbol: str | None
    quantity: Decimal
    unit_price: Decimal
    average_cost_at_sale: Decimal
    total_amount: Decimal
    loss: Decimal


@dataclass(frozen=True)
class DaywiseProfitBucket:
    """Realized profit booked on one calendar date.

    Attributes:
        bucket_date: Effective date of the contributing events.
        profit: Sum of in-range SELL realized amounts and INCOME amounts.
        loss_details: Loss-making SELLs on this date in replay order.
    """

    bucket_date: date
    profit: Decimal
    loss_details: tuple[DaywiseLossDetail, ...] = field(default_factory=tuple)


class AnalyticsPort(Protocol):
    """Port definition for realized-profit reporting services."""

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
        """


@dataclass(frozen=True)
class TransactionVolumeEntry:
    """One transaction inside a volume report range.

    Attributes:
        transaction_id: Transaction identifier.
        effective_date: Business date.
        kind: Normalized kind.
        instrument_id: Owning instrument.
        symbol: Owning instrument symbol.
        quantity: Shares for BUY/SELL, None for INCOME.
        total_amount: Cash moved.
    """

    transaction_id: int
    effective_date: date
    kind: str
    instrument_id: int
    symbol: str
    quantity: Decimal | None
    total_amount: Decimal


@dataclass(frozen=True)
class PortfolioHolding:
    """One currently held instrument and its share of the invested basis.

    Attributes:
        instrument_id: Instrument identifier.
        symbol: Instrument symbol.
        name: Instrument name.
        total_shares: Shares held.
        total_invested: Cost basis of the held shares.
        invested_weight: Fraction of the portfolio basis, at share scale.
    """

    instrument_id: int
    symbol: str
    name: str
    total_shares: Decimal
    total_invested: Decimal
    invested_weight: Decimal


class ActivityReportPort(Protocol):
    """Port definition for transaction volume and holdings distribution reports."""

    def analytics_transaction_volume(
        self,
        from_date: date,
        to_date: date,
        kind: str | None = None,
        instrument_id: int | None = None,
    ) -> list[TransactionVolumeEntry]:
        """List transactions in an inclusive date range, oldest first.

        Raises:
            ValueError: Raised when the range or kind is invalid.
            InstrumentNotFoundError: Raised when the filter instrument is not registered.
        """

    def analytics_portfolio_distribution(self) -> list[PortfolioHolding]:
        """List held instruments with their share of the invested basis, ordered by symbol."""
