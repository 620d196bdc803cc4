"""Typed interfaces for ledger-layer computations."""

from dataclasses import dataclass, field
from typing import Protocol

from stock_ledger.db import LedgerTransactionMutation, LedgerTransactionRecord, PositionAggregateRecord


@dataclass(frozen=True)
class RecomputeError:
    """One instrument failure recorded during a batch recompute.

    Attributes:
        instrument_id: Instrument whose recompute failed.
        message: Failure description.
    """

    instrument_id: int
    message: str


@dataclass(frozen=True)
class RecomputeAllResult:
    """Outcome of recomputing every registered instrument.

    Attributes:
        succeeded: Number of instruments recomputed successfully.
        errors: Per-instrument failures, in instrument order.
    """

    succeeded: int
    errors: tuple[RecomputeError, ...] = field(default_factory=tuple)


class LedgerRecomputePort(Protocol):
    """Port definition for cached position aggregate recomputation."""

    def ledger_recompute_instrument(self, instrument_id: int) -> PositionAggregateRecord:
        """Replay one instrument's history from zero and replace its aggregate.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            PositionAggregateRecord: Persisted replacement aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
            ValueError: Raised when transaction data is invalid.
        """

    def ledger_apply_mutation(
        self,
        mutation: LedgerTransactionMutation,
    ) -> tuple[LedgerTransactionRecord, PositionAggregateRecord]:
        """Apply one transaction write and replace the aggregate atomically.

        Args:
            mutation: Insert, update, or delete to apply.

        Returns:
            tuple[LedgerTransactionRecord, PositionAggregateRecord]: Written row and replacement aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
            TransactionNotFoundError: Raised when the update or delete target is absent.
            ValueError: Raised when the resulting history fails replay; the write is rolled back.
        """

    def ledger_recompute_all(self) -> RecomputeAllResult:
        """Recompute every registered instrument, isolating failures.

        Returns:
            RecomputeAllResult: Success count and per-instrument errors.

        Raises:
            RuntimeError: Raised when the instrument list cannot be read.
        """

    def ledger_get_aggregate(self, instrument_id: int) -> PositionAggregateRecord | None:
        """Return the cached aggregate of one registered instrument.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            PositionAggregateRecord | None: Cached aggregate, or None when no row exists yet.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
        """
