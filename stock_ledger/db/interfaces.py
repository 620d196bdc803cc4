"""Typed interfaces for database-layer services.

All SQL and ORM access must remain in the db package and its submodules.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Protocol

from stock_ledger.domain import HealthStatus


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


class InstrumentNotFoundError(LookupError):
    """Raised when an instrument id is not registered."""


class TransactionNotFoundError(LookupError):
    """Raised when a transaction id does not exist."""


class InstrumentAlreadyExistsError(RuntimeError):
    """Raised when registering a symbol that is already tracked."""


@dataclass(frozen=True)
class InstrumentRecord:
    """Persistence model for one tracked instrument row.

    Attributes:
        instrument_id: Surrogate instrument identifier.
        symbol: Upper-cased ticker symbol.
        name: Human-readable instrument name.
        created_at_utc: Persistence row creation timestamp in UTC.
    """

    instrument_id: int
    symbol: str
    name: str
    created_at_utc: datetime


@dataclass(frozen=True)
class LedgerTransactionWriteRequest:
    """Validated input payload for one transaction insert or update.

    Attributes:
        instrument_id: Owning instrument identifier.
        kind: Normalized kind (`BUY`, `SELL`, `INCOME`).
        effective_date: Business date the event applies to.
        quantity: Share quantity for BUY/SELL, None for INCOME.
        total_amount: Non-negative magnitude of cash moved.
        unit_price: `total_amount / quantity` for BUY/SELL, None for INCOME.
        notes: Optional free-text note.
    """

    instrument_id: int
    kind: str
    effective_date: date
    quantity: Decimal | None
    total_amount: Decimal
    unit_price: Decimal | None
    notes: str | None


@dataclass(frozen=True)
class LedgerTransactionRecord:
    """Persistence model for one ledger transaction row.

    Attributes:
        transaction_id: Monotonic identifier, also the same-date tie-break sequence.
        instrument_id: Owning instrument identifier.
        kind: Transaction kind (`BUY`, `SELL`, `INCOME`).
        effective_date: Business date the event applies to.
        quantity: Share quantity for BUY/SELL, None for INCOME.
        total_amount: Magnitude of cash moved.
        unit_price: Derived per-share price for BUY/SELL.
        notes: Optional free-text note.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last row update timestamp in UTC.
    """

    transaction_id: int
    instrument_id: int
    kind: str
    effective_date: date
    quantity: Decimal | None
    total_amount: Decimal
    unit_price: Decimal | None
    notes: str | None
    created_at_utc: datetime
    updated_at_utc: datetime


TRANSACTION_MUTATION_INSERT = "insert"
TRANSACTION_MUTATION_UPDATE = "update"
TRANSACTION_MUTATION_DELETE = "delete"
TRANSACTION_MUTATIONS = (TRANSACTION_MUTATION_INSERT, TRANSACTION_MUTATION_UPDATE, TRANSACTION_MUTATION_DELETE)


@dataclass(frozen=True)
class LedgerTransactionMutation:
    """One transaction write applied together with its aggregate recompute.

    Attributes:
        operation: One of `insert`, `update`, `delete`.
        instrument_id: Instrument whose history changes.
        request: Validated field values for insert and update, None for delete.
        transaction_id: Target row for update and delete, None for insert.
    """

    operation: str
    instrument_id: int
    request: LedgerTransactionWriteRequest | None = None
    transaction_id: int | None = None


@dataclass(frozen=True)
class InstrumentTransactionRecord:
    """Transaction row read together with its instrument's symbol and name.

    Attributes:
        transaction: Transaction row.
        symbol: Owning instrument symbol at read time.
        name: Owning instrument name at read time.
    """

    transaction: LedgerTransactionRecord
    symbol: str
    name: str


@dataclass(frozen=True)
class InstrumentHoldingRecord:
    """Instrument with a positive cached share balance.

    Attributes:
        instrument_id: Instrument identifier.
        symbol: Instrument symbol.
        name: Instrument name.
        total_shares: Cached shares held, always > 0.
        total_invested: Cached cost basis of held shares.
    """

    instrument_id: int
    symbol: str
    name: str
    total_shares: Decimal
    total_invested: Decimal


@dataclass(frozen=True)
class PositionAggregateWriteRequest:
    """Whole-row replacement payload for one cached position aggregate.

    Attributes:
        instrument_id: Instrument identifier.
        total_shares: Shares held at 8-decimal scale.
        total_invested: Cost basis of held shares at 2-decimal scale.
        average_cost: Average cost per share at 8-decimal scale.
        realized_profit: Cumulative realized profit at 2-decimal scale.
    """

    instrument_id: int
    total_shares: Decimal
    total_invested: Decimal
    average_cost: Decimal
    realized_profit: Decimal


@dataclass(frozen=True)
class PositionAggregateRecord:
    """Persistence model for one cached position aggregate row.

    Attributes:
        instrument_id: Instrument identifier.
        total_shares: Shares held.
        total_invested: Cost basis of held shares.
        average_cost: Average cost per share, zero when no shares are held.
        realized_profit: Cumulative realized profit, may be negative.
        updated_at_utc: Last replacement timestamp in UTC.
    """

    instrument_id: int
    total_shares: Decimal
    total_invested: Decimal
    average_cost: Decimal
    realized_profit: Decimal
    updated_at_utc: datetime


PositionAggregateComputeFn = Callable[[list[LedgerTransactionRecord]], PositionAggregateWriteRequest]


class LedgerRepositoryPort(Protocol):
    """Port definition for instrument, transaction, and aggregate persistence."""

    def db_instrument_create(self, symbol: str, name: str) -> InstrumentRecord:
        """Register one instrument together with its zero-state aggregate row.

        Args:
            symbol: Upper-cased ticker symbol.
            name: Instrument name.

        Returns:
            InstrumentRecord: Newly created instrument row.

        Raises:
            InstrumentAlreadyExistsError: Raised when the symbol is already registered.
            RuntimeError: Raised when persistence fails.
        """

    def db_instrument_get_by_id(self, instrument_id: int) -> InstrumentRecord | None:
        """Fetch one instrument by primary key, or None when absent."""

    def db_instrument_list(self) -> list[InstrumentRecord]:
        """List every registered instrument ordered by symbol."""

    def db_transaction_mutate_and_recompute(
        self,
        mutation: LedgerTransactionMutation,
        compute: PositionAggregateComputeFn,
    ) -> tuple[LedgerTransactionRecord, PositionAggregateRecord]:
        """Apply one transaction write and replace the aggregate in one database transaction.

        The write, the ordered read, the computation, and the aggregate
        replacement commit together or not at all.

        Args:
            mutation: Insert, update, or delete to apply.
            compute: Pure function mapping ordered transactions to the new aggregate.

        Returns:
            tuple[LedgerTransactionRecord, PositionAggregateRecord]: Written (or deleted)
                row and the persisted replacement aggregate.

        Raises:
            TransactionNotFoundError: Raised when an update or delete target is absent
                for the mutation instrument.
            ValueError: Raised when the mutation or the computed aggregate is invalid.
            RuntimeError: Raised when persistence fails.
        """

    def db_transaction_get_by_id(self, transaction_id: int) -> LedgerTransactionRecord | None:
        """Fetch one transaction by primary key, or None when absent."""

    def db_transaction_list_for_instrument(self, instrument_id: int) -> list[LedgerTransactionRecord]:
        """List every transaction of one instrument in replay order.

        Returns:
            list[LedgerTransactionRecord]: Rows ordered by effective date then transaction id.
        """

    def db_transaction_list_page(
        self,
        instrument_id: int,
        limit: int,
        offset: int,
    ) -> tuple[list[LedgerTransactionRecord], int]:
        """List one page of an instrument's transactions, newest first, with the total count."""

    def db_transaction_list_through_date(
        self,
        through_date: date,
        instrument_id: int | None = None,
    ) -> list[InstrumentTransactionRecord]:
        """List transactions dated on or before a bound, with symbols, from one statement.

        Args:
            through_date: Inclusive upper effective-date bound.
            instrument_id: Optional single-instrument filter.

        Returns:
            list[InstrumentTransactionRecord]: Rows ordered by effective date then transaction id.
        """

    def db_transaction_search(
        self,
        instrument_id: int | None = None,
        kind: str | None = None,
        search_text: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[InstrumentTransactionRecord]:
        """List transactions across instruments matching every given filter.

        Args:
            instrument_id: Optional owning instrument filter.
            kind: Optional normalized kind filter.
            search_text: Optional case-insensitive substring of symbol, name, or notes.
            from_date: Optional inclusive lower effective-date bound.
            to_date: Optional inclusive upper effective-date bound.

        Returns:
            list[InstrumentTransactionRecord]: Rows ordered newest first.
        """

    def db_position_aggregate_get(self, instrument_id: int) -> PositionAggregateRecord | None:
        """Fetch the cached aggregate of one instrument, or None when absent."""

    def db_position_aggregate_list(self) -> list[PositionAggregateRecord]:
        """List every cached aggregate ordered by instrument id."""

    def db_position_aggregate_recompute(
        self,
        instrument_id: int,
        compute: PositionAggregateComputeFn,
    ) -> PositionAggregateRecord:
        """Read ordered transactions, compute, and replace the aggregate atomically.

        The read, the computation, and the replacement run as one serialized unit
        per instrument. A failure anywhere leaves the previous aggregate row intact.

        Args:
            instrument_id: Instrument identifier.
            compute: Pure function mapping ordered transactions to the new aggregate.

        Returns:
            PositionAggregateRecord: Persisted replacement row.

        Raises:
            ValueError: Raised when compute rejects the transaction data.
            RuntimeError: Raised when persistence fails.
        """

    def db_position_holding_list(self) -> list[InstrumentHoldingRecord]:
        """List instruments whose cached aggregate holds shares, ordered by symbol."""
