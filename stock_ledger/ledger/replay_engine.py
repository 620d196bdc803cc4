"""Moving-average ledger replay primitives.

The fold is path dependent: a SELL is costed against the average cost at the
moment of sale, so same-date events must be applied in insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import Iterable, Iterator

from stock_ledger.domain import (
    DECIMAL_ZERO,
    TRANSACTION_KIND_BUY,
    TRANSACTION_KIND_INCOME,
    TRANSACTION_KIND_SELL,
    TRANSACTION_KINDS,
)

# Pinned so replays never depend on a caller's thread-local decimal context.
_REPLAY_DECIMAL_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class ReplayTransactionInput:
    """Transaction input contract for moving-average replay.

    Attributes:
        insertion_sequence: Monotonic tie-break for events sharing a date.
        instrument_id: Owning instrument identifier.
        kind: Transaction kind (`BUY`, `SELL`, `INCOME`).
        effective_date: Business date the event applies to.
        quantity: Share quantity, required and positive for BUY/SELL, None for INCOME.
        total_amount: Non-negative magnitude of cash moved.
    """

    insertion_sequence: int
    instrument_id: int
    kind: str
    effective_date: date
    quantity: Decimal | None
    total_amount: Decimal


@dataclass(frozen=True)
class ReplayState:
    """Running position state threaded through one replay.

    Attributes:
        shares: Shares held.
        invested: Cost basis of held shares.
        average_cost: Cost per held share, exactly zero when no shares are held.
        realized_profit: Cumulative realized profit.
    """

    shares: Decimal
    invested: Decimal
    average_cost: Decimal
    realized_profit: Decimal

    @classmethod
    def zero(cls) -> "ReplayState":
        return cls(
            shares=DECIMAL_ZERO,
            invested=DECIMAL_ZERO,
            average_cost=DECIMAL_ZERO,
            realized_profit=DECIMAL_ZERO,
        )


@dataclass(frozen=True)
class ReplayStep:
    """Per-event effect of one applied transaction.

    Attributes:
        transaction: Applied transaction input.
        state_before: Replay state before the event.
        state_after: Replay state after the event.
        cost_removed: Cost basis released by a SELL, zero otherwise.
        realized: Profit realized by a SELL or INCOME, zero for BUY.
        oversold: Whether a SELL exceeded the shares held before it.
    """

    transaction: ReplayTransactionInput
    state_before: ReplayState
    state_after: ReplayState
    cost_removed: Decimal
    realized: Decimal
    oversold: bool


def replay_input_from_record(record) -> ReplayTransactionInput:
    """Build replay input from a persisted transaction record.

    Args:
        record: Object exposing `transaction_id`, `instrument_id`, `kind`,
            `effective_date`, `quantity`, and `total_amount`.

    Returns:
        ReplayTransactionInput: Replay input using transaction id as insertion sequence.

    Raises:
        ValueError: Raised when record is None.
    """

    if record is None:
        raise ValueError("record must not be None")

    return ReplayTransactionInput(
        insertion_sequence=record.transaction_id,
        instrument_id=record.instrument_id,
        kind=record.kind,
        effective_date=record.effective_date,
        quantity=record.quantity,
        total_amount=record.total_amount,
    )


def replay_sort_transactions(transactions: Iterable[ReplayTransactionInput]) -> list[ReplayTransactionInput]:
    """Return transactions in replay order without mutating the input.

    Args:
        transactions: Ordered or unordered replay inputs.

    Returns:
        list[ReplayTransactionInput]: Inputs sorted by effective date then insertion sequence.

    Raises:
        ValueError: Raised when transactions is None.
    """

    if transactions is None:
        raise ValueError("transactions must not be None")
    return sorted(
        transactions,
        key=lambda transaction: (transaction.effective_date, transaction.insertion_sequence),
    )


def replay_validate_transaction(transaction: ReplayTransactionInput) -> None:
    """Fail fast on transaction data that would corrupt the replay.

    Args:
        transaction: Replay input.

    Returns:
        None: Validation succeeds silently.

    Raises:
        ValueError: Raised for unsupported kinds, missing or non-positive BUY/SELL
            quantities, INCOME quantities, or invalid amounts.
    """

    if transaction is None:
        raise ValueError("transaction must not be None")

    label = f"transaction sequence={transaction.insertion_sequence}"
    if transaction.kind not in TRANSACTION_KINDS:
        raise ValueError(f"{label} has unsupported kind={transaction.kind}")
    if not isinstance(transaction.effective_date, date):
        raise ValueError(f"{label} effective_date must be a date")
    if not isinstance(transaction.total_amount, Decimal) or not transaction.total_amount.is_finite():
        raise ValueError(f"{label} total_amount must be a finite Decimal")
    if transaction.total_amount < DECIMAL_ZERO:
        raise ValueError(f"{label} total_amount must be >= 0")

    if transaction.kind == TRANSACTION_KIND_INCOME:
        if transaction.quantity is not None:
            raise ValueError(f"{label} INCOME must not carry a quantity")
        return

    if transaction.quantity is None:
        raise ValueError(f"{label} {transaction.kind} requires a quantity")
    if not isinstance(transaction.quantity, Decimal) or not transaction.quantity.is_finite():
        raise ValueError(f"{label} quantity must be a finite Decimal")
    if transaction.quantity <= DECIMAL_ZERO:
        raise ValueError(f"{label} {transaction.kind} quantity must be > 0")


def replay_apply_transaction(state: ReplayState, transaction: ReplayTransactionInput) -> ReplayStep:
    """Apply one transaction to a replay state with moving-average costing.

    Args:
        state: Replay state before the event.
        transaction: Validated replay input.

    Returns:
        ReplayStep: New state with the event's cost removed and realized amounts.

    Raises:
        ValueError: Raised when the transaction fails validation.
    """

    replay_validate_transaction(transaction)

    with localcontext(_REPLAY_DECIMAL_CONTEXT):
        if transaction.kind == TRANSACTION_KIND_BUY:
            shares_after = state.shares + transaction.quantity
            invested_after = state.invested + transaction.total_amount
            # Only reachable after an oversell drove shares negative.
            average_cost_after = DECIMAL_ZERO if shares_after == DECIMAL_ZERO else invested_after / shares_after
            state_after = ReplayState(
                shares=shares_after,
                invested=invested_after,
                average_cost=average_cost_after,
                realized_profit=state.realized_profit,
            )
            return ReplayStep(
                transaction=transaction,
                state_before=state,
                state_after=state_after,
                cost_removed=DECIMAL_ZERO,
                realized=DECIMAL_ZERO,
                oversold=False,
            )

        if transaction.kind == TRANSACTION_KIND_SELL:
            shares_after = state.shares - transaction.quantity
            if shares_after == DECIMAL_ZERO:
                # Full liquidation releases the whole basis so no division residue survives.
                cost_removed = state.invested
                invested_after = DECIMAL_ZERO
                average_cost_after = DECIMAL_ZERO
            else:
                cost_removed = state.average_cost * transaction.quantity
                invested_after = state.invested - cost_removed
                average_cost_after = invested_after / shares_after
            realized = transaction.total_amount - cost_removed
            state_after = ReplayState(
                shares=shares_after,
                invested=invested_after,
                average_cost=average_cost_after,
                realized_profit=state.realized_profit + realized,
            )
            return ReplayStep(
                transaction=transaction,
                state_before=state,
                state_after=state_after,
                cost_removed=cost_removed,
                realized=realized,
                oversold=transaction.quantity > state.shares,
            )

        realized = transaction.total_amount
        state_after = ReplayState(
            shares=state.shares,
            invested=state.invested,
            average_cost=state.average_cost,
            realized_profit=state.realized_profit + realized,
        )
        return ReplayStep(
            transaction=transaction,
            state_before=state,
            state_after=state_after,
            cost_removed=DECIMAL_ZERO,
            realized=realized,
            oversold=False,
        )


def replay_iterate_transactions(transactions: Iterable[ReplayTransactionInput]) -> Iterator[ReplayStep]:
    """Replay one instrument's history from zero, yielding every step in order.

    Args:
        transactions: One instrument's replay inputs in any order.

    Returns:
        Iterator[ReplayStep]: Steps in replay order.

    Raises:
        ValueError: Raised when inputs span instruments or fail validation.
    """

    ordered_transactions = replay_sort_transactions(transactions)
    instrument_ids = {transaction.instrument_id for transaction in ordered_transactions}
    if len(instrument_ids) > 1:
        raise ValueError(f"replay inputs must belong to one instrument, got {sorted(instrument_ids)}")

    state = ReplayState.zero()
    for transaction in ordered_transactions:
        step = replay_apply_transaction(state, transaction)
        state = step.state_after
        yield step


def replay_fold_transactions(transactions: Iterable[ReplayTransactionInput]) -> ReplayState:
    """Fold one instrument's history into its final replay state.

    Args:
        transactions: One instrument's replay inputs in any order.

    Returns:
        ReplayState: Final state, or the zero state for an empty history.

    Raises:
        ValueError: Raised when inputs span instruments or fail validation.
    """

    state = ReplayState.zero()
    for step in replay_iterate_transactions(transactions):
        state = step.state_after
    return state


__all__ = [
    "ReplayState",
    "ReplayStep",
    "ReplayTransactionInput",
    "replay_apply_transaction",
    "replay_fold_transactions",
    "replay_input_from_record",
    "replay_iterate_transactions",
    "replay_sort_transactions",
    "replay_validate_transaction",
]
