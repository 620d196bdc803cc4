"""Cached position aggregate recomputation from full ledger replay."""
# pylint: disable=too-few-public-methods

from __future__ import annotations

import logging

from stock_ledger.db import (
    InstrumentNotFoundError,
    LedgerRepositoryPort,
    LedgerTransactionMutation,
    LedgerTransactionRecord,
    PositionAggregateRecord,
    PositionAggregateWriteRequest,
)
from stock_ledger.domain import (
    DECIMAL_ZERO,
    domain_decimal_quantize_currency,
    domain_decimal_quantize_shares,
)

from .instrument_locks import InstrumentLockRegistry
from .interfaces import LedgerRecomputePort, RecomputeAllResult, RecomputeError
from .replay_engine import ReplayState, replay_input_from_record, replay_iterate_transactions

logger = logging.getLogger(__name__)


class PositionAggregateRecomputeService(LedgerRecomputePort):
    """Re-derive cached aggregates by replaying every transaction from zero.

    Editing or deleting an early event changes the average cost seen by every
    later SELL, so aggregates are never patched incrementally.
    """

    def __init__(self, repository: LedgerRepositoryPort, lock_registry: InstrumentLockRegistry | None = None):
        """Initialize recompute service dependencies.

        Args:
            repository: DB-layer ledger repository.
            lock_registry: Optional shared per-instrument lock registry.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when repository is invalid.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository
        self._lock_registry = lock_registry or InstrumentLockRegistry()

    @property
    def lock_registry(self) -> InstrumentLockRegistry:
        return self._lock_registry

    def ledger_recompute_instrument(self, instrument_id: int) -> PositionAggregateRecord:
        """Replay one instrument and replace its cached aggregate.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            PositionAggregateRecord: Persisted replacement aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
            ValueError: Raised when transaction data is invalid; nothing is persisted.
            RuntimeError: Raised when persistence fails; the previous aggregate remains.
        """

        with self._lock_registry.ledger_lock_instrument(instrument_id):
            self._ledger_require_instrument(instrument_id)
            aggregate = self._repository.db_position_aggregate_recompute(
                instrument_id=instrument_id,
                compute=lambda transaction_rows: self._ledger_compute_aggregate(instrument_id, transaction_rows),
            )

        logger.info(
            "Recomputed aggregate instrument_id=%s shares=%s invested=%s average_cost=%s realized_profit=%s",
            instrument_id,
            aggregate.total_shares,
            aggregate.total_invested,
            aggregate.average_cost,
            aggregate.realized_profit,
        )
        return aggregate

    def ledger_apply_mutation(
        self,
        mutation: LedgerTransactionMutation,
    ) -> tuple[LedgerTransactionRecord, PositionAggregateRecord]:
        """Apply one transaction write and replace the aggregate as a single unit.

        When replay rejects the resulting history, or the aggregate cannot be
        persisted, the write is rolled back with it.

        Args:
            mutation: Insert, update, or delete to apply.

        Returns:
            tuple[LedgerTransactionRecord, PositionAggregateRecord]: Written row and replacement aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
            TransactionNotFoundError: Raised when the update or delete target is absent.
            ValueError: Raised when the resulting history fails replay; nothing is persisted.
            RuntimeError: Raised when persistence fails; nothing is persisted.
        """

        if mutation is None:
            raise ValueError("mutation must not be None")
        instrument_id = mutation.instrument_id

        with self._lock_registry.ledger_lock_instrument(instrument_id):
            self._ledger_require_instrument(instrument_id)
            transaction, aggregate = self._repository.db_transaction_mutate_and_recompute(
                mutation=mutation,
                compute=lambda transaction_rows: self._ledger_compute_aggregate(instrument_id, transaction_rows),
            )

        logger.info(
            "Applied %s transaction_id=%s and recomputed instrument_id=%s shares=%s invested=%s realized_profit=%s",
            mutation.operation,
            transaction.transaction_id,
            instrument_id,
            aggregate.total_shares,
            aggregate.total_invested,
            aggregate.realized_profit,
        )
        return transaction, aggregate

    def ledger_recompute_all(self) -> RecomputeAllResult:
        """Recompute every registered instrument, isolating per-instrument failures.

        Returns:
            RecomputeAllResult: Success count and per-instrument errors.

        Raises:
            RuntimeError: Raised when the instrument list cannot be read.
        """

        instruments = self._repository.db_instrument_list()
        logger.info("Recomputing aggregates for %s instruments", len(instruments))

        succeeded = 0
        errors: list[RecomputeError] = []
        for instrument in instruments:
            try:
                self.ledger_recompute_instrument(instrument.instrument_id)
            except Exception as error:
                logger.exception(
                    "Aggregate recompute failed instrument_id=%s symbol=%s: %s",
                    instrument.instrument_id,
                    instrument.symbol,
                    error,
                )
                errors.append(
                    RecomputeError(instrument_id=instrument.instrument_id, message=str(error) or type(error).__name__)
                )
                continue
            succeeded += 1

        return RecomputeAllResult(succeeded=succeeded, errors=tuple(errors))

    def ledger_get_aggregate(self, instrument_id: int) -> PositionAggregateRecord | None:
        """Return the cached aggregate of one registered instrument.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            PositionAggregateRecord | None: Cached aggregate, or None when absent.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
        """

        self._ledger_require_instrument(instrument_id)
        return self._repository.db_position_aggregate_get(instrument_id)

    def _ledger_require_instrument(self, instrument_id: int) -> None:
        if self._repository.db_instrument_get_by_id(instrument_id) is None:
            raise InstrumentNotFoundError(f"instrument not found instrument_id={instrument_id}")

    def _ledger_compute_aggregate(
        self,
        instrument_id: int,
        transaction_rows: list[LedgerTransactionRecord],
    ) -> PositionAggregateWriteRequest:
        """Fold ordered transaction rows into a quantized aggregate replacement.

        Args:
            instrument_id: Instrument identifier.
            transaction_rows: Instrument transactions in replay order.

        Returns:
            PositionAggregateWriteRequest: Whole-row aggregate replacement.

        Raises:
            ValueError: Raised when any transaction fails replay validation.
        """

        logger.info("Replaying instrument_id=%s over %s transactions", instrument_id, len(transaction_rows))

        state = ReplayState.zero()
        for step in replay_iterate_transactions(replay_input_from_record(row) for row in transaction_rows):
            if step.oversold:
                logger.warning(
                    "SELL exceeds holdings instrument_id=%s transaction_id=%s held=%s sold=%s",
                    instrument_id,
                    step.transaction.insertion_sequence,
                    step.state_before.shares,
                    step.transaction.quantity,
                )
            logger.debug(
                "Applied %s transaction_id=%s shares %s -> %s",
                step.transaction.kind,
                step.transaction.insertion_sequence,
                step.state_before.shares,
                step.state_after.shares,
            )
            state = step.state_after

        return _ledger_build_aggregate_request(instrument_id, state)


def _ledger_build_aggregate_request(instrument_id: int, state: ReplayState) -> PositionAggregateWriteRequest:
    """Quantize a final replay state to persisted scales.

    Zero shares always persist a zero basis and zero average cost.
    """

    total_shares = domain_decimal_quantize_shares(state.shares, "total_shares")
    if total_shares == DECIMAL_ZERO:
        total_invested = domain_decimal_quantize_currency(DECIMAL_ZERO)
        average_cost = domain_decimal_quantize_shares(DECIMAL_ZERO)
    else:
        total_invested = domain_decimal_quantize_currency(state.invested, "total_invested")
        average_cost = domain_decimal_quantize_shares(state.average_cost, "average_cost")

    return PositionAggregateWriteRequest(
        instrument_id=instrument_id,
        total_shares=total_shares,
        total_invested=total_invested,
        average_cost=average_cost,
        realized_profit=domain_decimal_quantize_currency(state.realized_profit, "realized_profit"),
    )


__all__ = ["PositionAggregateRecomputeService"]
