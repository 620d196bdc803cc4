"""Regression tests for moving-average replay ordering and transition rules."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, localcontext

import pytest

from stock_ledger.ledger import (
    ReplayState,
    ReplayTransactionInput,
    replay_apply_transaction,
    replay_fold_transactions,
    replay_iterate_transactions,
)


def _buy(sequence: int, effective_date: date, quantity: str, amount: str, instrument_id: int = 1) -> ReplayTransactionInput:
    return ReplayTransactionInput(
        insertion_sequence=sequence,
        instrument_id=instrument_id,
        kind="BUY",
        effective_date=effective_date,
        quantity=Decimal(quantity),
        total_amount=Decimal(amount),
    )


def _sell(sequence: int, effective_date: date, quantity: str, amount: str, instrument_id: int = 1) -> ReplayTransactionInput:
    return ReplayTransactionInput(
        insertion_sequence=sequence,
        instrument_id=instrument_id,
        kind="SELL",
        effective_date=effective_date,
        quantity=Decimal(quantity),
        total_amount=Decimal(amount),
    )


def _income(sequence: int, effective_date: date, amount: str, instrument_id: int = 1) -> ReplayTransactionInput:
    return ReplayTransactionInput(
        insertion_sequence=sequence,
        instrument_id=instrument_id,
        kind="INCOME",
        effective_date=effective_date,
        quantity=None,
        total_amount=Decimal(amount),
    )


def _reference_history() -> list[ReplayTransactionInput]:
    return [
        _buy(1, date(2026, 1, 5), "100", "50000"),
        _buy(2, date(2026, 1, 12), "50", "30000"),
        _sell(3, date(2026, 2, 2), "75", "52500"),
        _income(4, date(2026, 3, 1), "500"),
    ]


def test_replay_reference_scenario_follows_moving_average_rules() -> None:
    """Walk the four-event reference history step by step.

    Returns:
        None: Assertions validate every intermediate state.

    Raises:
        AssertionError: Raised when a transition deviates from moving-average costing.
    """

    steps = list(replay_iterate_transactions(_reference_history()))

    assert steps[0].state_after.shares == Decimal("100")
    assert steps[0].state_after.invested == Decimal("50000")
    assert steps[0].state_after.average_cost == Decimal("500")

    assert steps[1].state_after.shares == Decimal("150")
    assert steps[1].state_after.invested == Decimal("80000")
    assert steps[1].state_after.average_cost.quantize(Decimal("0.0001")) == Decimal("533.3333")

    sell_step = steps[2]
    assert sell_step.cost_removed == Decimal("40000")
    assert sell_step.realized == Decimal("12500")
    assert sell_step.state_after.shares == Decimal("75")
    assert sell_step.state_after.invested == Decimal("40000")
    assert sell_step.state_after.average_cost == steps[1].state_after.average_cost
    assert sell_step.oversold is False

    income_step = steps[3]
    assert income_step.state_after.realized_profit == Decimal("13000")
    assert income_step.state_after.shares == Decimal("75")
    assert income_step.state_after.invested == Decimal("40000")
    assert income_step.realized == Decimal("500")


def test_replay_sell_costs_against_average_not_purchase_price() -> None:
    """Cost a SELL at the running average even when lots had different prices."""

    state = replay_fold_transactions(
        [
            _buy(1, date(2026, 1, 1), "10", "100"),
            _buy(2, date(2026, 1, 2), "10", "300"),
            _sell(3, date(2026, 1, 3), "10", "250"),
        ]
    )

    assert state.realized_profit == Decimal("50")
    assert state.shares == Decimal("10")
    assert state.invested == Decimal("200")
    assert state.average_cost == Decimal("20")


def test_replay_full_liquidation_resets_position_to_exact_zero() -> None:
    """Drive shares, invested, and average cost to exactly zero on a full sale.

    Returns:
        None: Assertions validate exact zero state.

    Raises:
        AssertionError: Raised when residue survives a full liquidation.
    """

    state = replay_fold_transactions(
        [
            _buy(1, date(2026, 1, 1), "3", "100"),
            _buy(2, date(2026, 1, 2), "7", "233.33"),
            _sell(3, date(2026, 1, 3), "10", "400"),
        ]
    )

    assert state.shares == Decimal("0")
    assert state.invested == Decimal("0")
    assert state.average_cost == Decimal("0")
    assert state.realized_profit == Decimal("66.67")


def test_replay_same_date_events_follow_insertion_sequence() -> None:
    """Apply same-date events by insertion sequence regardless of input order."""

    same_day = date(2026, 4, 1)
    history = [
        _sell(3, same_day, "5", "700"),
        _buy(1, same_day, "10", "1000"),
        _buy(2, same_day, "10", "2000"),
    ]

    forward_state = replay_fold_transactions(history)
    reverse_state = replay_fold_transactions(list(reversed(history)))

    assert forward_state == reverse_state
    assert forward_state.realized_profit == Decimal("-50")


def test_replay_reordering_same_date_events_changes_results() -> None:
    """Show that the fold is not commutative across insertion order."""

    same_day = date(2026, 4, 1)
    sell_before_second_buy = replay_fold_transactions(
        [
            _buy(1, same_day, "10", "1000"),
            _sell(2, same_day, "5", "700"),
            _buy(3, same_day, "10", "2000"),
        ]
    )
    sell_after_second_buy = replay_fold_transactions(
        [
            _buy(1, same_day, "10", "1000"),
            _buy(2, same_day, "10", "2000"),
            _sell(3, same_day, "5", "700"),
        ]
    )

    assert sell_before_second_buy.realized_profit == Decimal("200")
    assert sell_after_second_buy.realized_profit == Decimal("-50")


def test_replay_conservation_holds_at_every_prefix() -> None:
    """Keep invested equal to BUY amounts minus removed cost at every step.

    Returns:
        None: Assertions validate the conservation property.

    Raises:
        AssertionError: Raised when invested drifts from the conserved total.
    """

    history = [
        _buy(1, date(2026, 1, 1), "3", "10"),
        _buy(2, date(2026, 1, 2), "7", "33.33"),
        _sell(3, date(2026, 1, 3), "4", "20"),
        _income(4, date(2026, 1, 4), "1.25"),
        _buy(5, date(2026, 1, 5), "0.5", "9.99"),
        _sell(6, date(2026, 1, 6), "2.25", "11"),
        _sell(7, date(2026, 1, 7), "4.25", "30"),
    ]

    bought = Decimal("0")
    removed = Decimal("0")
    for step in replay_iterate_transactions(history):
        if step.transaction.kind == "BUY":
            bought += step.transaction.total_amount
        removed += step.cost_removed
        assert step.state_after.invested == bought - removed

    assert step.state_after.shares == Decimal("0")
    assert step.state_after.invested == Decimal("0")


def test_replay_oversell_proceeds_and_is_flagged() -> None:
    """Let a SELL exceed holdings, driving shares negative and marking the step."""

    steps = list(
        replay_iterate_transactions(
            [
                _buy(1, date(2026, 1, 1), "10", "100"),
                _sell(2, date(2026, 1, 2), "15", "180"),
            ]
        )
    )

    assert steps[1].oversold is True
    assert steps[1].cost_removed == Decimal("150")
    assert steps[1].realized == Decimal("30")
    assert steps[1].state_after.shares == Decimal("-5")


@pytest.mark.parametrize(
    "transaction",
    [
        ReplayTransactionInput(1, 1, "BUY", date(2026, 1, 1), None, Decimal("10")),
        ReplayTransactionInput(1, 1, "BUY", date(2026, 1, 1), Decimal("0"), Decimal("10")),
        ReplayTransactionInput(1, 1, "SELL", date(2026, 1, 1), Decimal("-1"), Decimal("10")),
        ReplayTransactionInput(1, 1, "INCOME", date(2026, 1, 1), Decimal("1"), Decimal("10")),
        ReplayTransactionInput(1, 1, "BUY", date(2026, 1, 1), Decimal("1"), Decimal("-10")),
        ReplayTransactionInput(1, 1, "SPLIT", date(2026, 1, 1), Decimal("1"), Decimal("10")),
    ],
)
def test_replay_rejects_invalid_transactions(transaction: ReplayTransactionInput) -> None:
    """Fail fast on data-integrity faults instead of coercing them."""

    with pytest.raises(ValueError):
        replay_apply_transaction(ReplayState.zero(), transaction)


def test_replay_rejects_float_quantities() -> None:
    """Refuse binary floating point quantities inside the fold."""

    with pytest.raises(ValueError, match="finite Decimal"):
        replay_apply_transaction(
            ReplayState.zero(),
            ReplayTransactionInput(1, 1, "BUY", date(2026, 1, 1), 1.5, Decimal("10")),
        )


def test_replay_rejects_mixed_instruments() -> None:
    """Refuse to fold histories that span instruments."""

    with pytest.raises(ValueError, match="one instrument"):
        replay_fold_transactions(
            [
                _buy(1, date(2026, 1, 1), "1", "10", instrument_id=1),
                _buy(2, date(2026, 1, 1), "1", "10", instrument_id=2),
            ]
        )


def test_replay_does_not_mutate_input_and_is_context_independent() -> None:
    """Leave input untouched and ignore the caller's decimal context."""

    history = list(reversed(_reference_history()))
    original_history = list(history)

    default_state = replay_fold_transactions(history)
    with localcontext() as caller_context:
        caller_context.prec = 5
        low_precision_state = replay_fold_transactions(history)

    assert history == original_history
    assert low_precision_state == default_state


def test_replay_empty_history_returns_zero_state() -> None:
    assert replay_fold_transactions([]) == ReplayState.zero()
