"""Regression tests for instrument registration and transaction mutation workflows."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from stock_ledger.db import InstrumentAlreadyExistsError, InstrumentNotFoundError, TransactionNotFoundError
from stock_ledger.ledger import TransactionFields, ledger_build_transaction_request, ledger_group_audit_rows


def _fields(kind: str, effective_date: str, quantity, amount, notes: str | None = None) -> TransactionFields:
    return TransactionFields(
        kind=kind,
        effective_date=effective_date,
        quantity=quantity,
        total_amount=amount,
        notes=notes,
    )


def _aggregate_values(aggregate) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    return (aggregate.total_shares, aggregate.total_invested, aggregate.average_cost, aggregate.realized_profit)


def test_instrument_register_normalizes_symbol_and_creates_zero_aggregate(transaction_service) -> None:
    """Upper-case symbols and seed a zero-state aggregate on registration."""

    instrument = transaction_service.ledger_instrument_register("  acme ", " Acme Corp ")
    position = transaction_service.ledger_instrument_get(instrument.instrument_id)

    assert instrument.symbol == "ACME"
    assert instrument.name == "Acme Corp"
    assert _aggregate_values(position.aggregate) == (Decimal("0"),) * 4


@pytest.mark.parametrize(
    ("symbol", "name"),
    [("", "Acme"), ("ACME", "  "), ("TOOLONGSYMBOL", "Acme")],
)
def test_instrument_register_rejects_invalid_input(transaction_service, symbol: str, name: str) -> None:
    with pytest.raises(ValueError):
        transaction_service.ledger_instrument_register(symbol, name)


def test_instrument_register_rejects_duplicate_symbol(transaction_service) -> None:
    transaction_service.ledger_instrument_register("ACME", "Acme Corp")

    with pytest.raises(InstrumentAlreadyExistsError):
        transaction_service.ledger_instrument_register("acme", "Acme Again")


def test_transaction_add_returns_recomputed_aggregate(transaction_service) -> None:
    """Return the aggregate that already reflects the inserted row.

    Returns:
        None: Assertions validate synchronous recompute.

    Raises:
        AssertionError: Raised when the mutation result is stale.
    """

    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")

    result = transaction_service.ledger_transaction_add(
        instrument.instrument_id,
        _fields("buy", "2026-01-05", "100", "50,000.00", notes="  opening lot "),
    )

    assert result.transaction.kind == "BUY"
    assert result.transaction.unit_price == Decimal("500")
    assert result.transaction.notes == "opening lot"
    assert _aggregate_values(result.aggregate) == (Decimal("100"), Decimal("50000"), Decimal("500"), Decimal("0"))


def test_transaction_add_accepts_dividend_alias(transaction_service) -> None:
    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")

    result = transaction_service.ledger_transaction_add(
        instrument.instrument_id,
        _fields("DIVIDEND", "2026-03-01", None, "12.5"),
    )

    assert result.transaction.kind == "INCOME"
    assert result.transaction.unit_price is None
    assert result.aggregate.realized_profit == Decimal("12.50")


@pytest.mark.parametrize(
    "fields",
    [
        _fields("BUY", "2026-01-01", None, "10"),
        _fields("BUY", "2026-01-01", "0", "10"),
        _fields("SELL", "2026-01-01", "-3", "10"),
        _fields("SELL", "2026-01-01", "0.000000001", "10"),
        _fields("INCOME", "2026-01-01", "1", "10"),
        _fields("BUY", "2026-01-01", "1", "-10"),
        _fields("BUY", "2026-01-01", 1.5, "10"),
        _fields("BUY", "2026-13-01", "1", "10"),
        _fields("TRANSFER", "2026-01-01", "1", "10"),
        _fields("BUY", "2026-01-01", "1", "1e30"),
        _fields("BUY", "2026-01-01", "1", "100000000000000000"),
        _fields("BUY", "2026-01-01", "10000000000", "10"),
        _fields("BUY", "2026-01-01", "0.00000001", "1000000000000000"),
    ],
)
def test_transaction_add_rejects_invalid_fields_without_writing(
    transaction_service,
    ledger_repository,
    fields: TransactionFields,
) -> None:
    """Reject validation faults before anything reaches the store."""

    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")

    with pytest.raises(ValueError):
        transaction_service.ledger_transaction_add(instrument.instrument_id, fields)

    assert ledger_repository.db_transaction_list_for_instrument(instrument.instrument_id) == []
    assert ledger_repository.aggregate_write_count == 0


def test_transaction_add_unknown_instrument_raises_not_found(transaction_service) -> None:
    with pytest.raises(InstrumentNotFoundError):
        transaction_service.ledger_transaction_add(7, _fields("BUY", "2026-01-01", "1", "10"))


def test_transaction_update_changing_date_changes_results(transaction_service) -> None:
    """Move a SELL before a BUY and observe a different realized profit.

    Returns:
        None: Assertions validate order sensitivity through full replay.

    Raises:
        AssertionError: Raised when edits are not replayed from zero.
    """

    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    instrument_id = instrument.instrument_id
    transaction_service.ledger_transaction_add(instrument_id, _fields("BUY", "2026-01-01", "10", "1000"))
    second_buy = transaction_service.ledger_transaction_add(instrument_id, _fields("BUY", "2026-01-03", "10", "2000"))
    sell = transaction_service.ledger_transaction_add(instrument_id, _fields("SELL", "2026-01-05", "5", "700"))
    assert sell.aggregate.realized_profit == Decimal("-50")

    moved = transaction_service.ledger_transaction_update(
        sell.transaction.transaction_id,
        _fields("SELL", "2026-01-02", "5", "700"),
    )

    assert moved.aggregate.realized_profit == Decimal("200")
    assert second_buy.transaction.transaction_id < moved.transaction.transaction_id


def test_transaction_update_changing_notes_keeps_results(transaction_service) -> None:
    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    added = transaction_service.ledger_transaction_add(instrument.instrument_id, _fields("BUY", "2026-01-01", "3", "100"))

    updated = transaction_service.ledger_transaction_update(
        added.transaction.transaction_id,
        _fields("BUY", "2026-01-01", "3", "100", notes="broker fill"),
    )

    assert updated.transaction.notes == "broker fill"
    assert _aggregate_values(updated.aggregate) == _aggregate_values(added.aggregate)


def test_transaction_update_cannot_move_instrument(transaction_service) -> None:
    first = transaction_service.ledger_instrument_register("AAA", "First")
    second = transaction_service.ledger_instrument_register("BBB", "Second")
    added = transaction_service.ledger_transaction_add(first.instrument_id, _fields("BUY", "2026-01-01", "1", "10"))

    with pytest.raises(ValueError, match="cannot be changed"):
        transaction_service.ledger_transaction_update(
            added.transaction.transaction_id,
            _fields("BUY", "2026-01-01", "1", "10"),
            instrument_id=second.instrument_id,
        )


def test_transaction_update_unknown_transaction_raises_not_found(transaction_service) -> None:
    with pytest.raises(TransactionNotFoundError):
        transaction_service.ledger_transaction_update(123, _fields("BUY", "2026-01-01", "1", "10"))


def test_transaction_delete_matches_history_without_that_row(transaction_service) -> None:
    """Reach the same aggregate as a history that never contained the deleted row.

    Returns:
        None: Assertions validate deletion symmetry.

    Raises:
        AssertionError: Raised when deletion leaves residue of the removed row.
    """

    with_row = transaction_service.ledger_instrument_register("AAA", "With deletion")
    without_row = transaction_service.ledger_instrument_register("BBB", "Never added")
    history = [
        _fields("BUY", "2026-01-01", "10", "1000"),
        _fields("BUY", "2026-01-02", "5", "650"),
        _fields("SELL", "2026-01-03", "7", "900"),
        _fields("INCOME", "2026-01-04", None, "20"),
    ]

    added_ids = []
    for index, fields in enumerate(history):
        result = transaction_service.ledger_transaction_add(with_row.instrument_id, fields)
        added_ids.append(result.transaction.transaction_id)
        if index != 1:
            transaction_service.ledger_transaction_add(without_row.instrument_id, fields)

    deleted = transaction_service.ledger_transaction_delete(added_ids[1])
    expected = transaction_service.ledger_instrument_get(without_row.instrument_id).aggregate

    assert deleted.transaction.transaction_id == added_ids[1]
    assert _aggregate_values(deleted.aggregate) == _aggregate_values(expected)


def test_transaction_delete_unknown_transaction_raises_not_found(transaction_service) -> None:
    with pytest.raises(TransactionNotFoundError):
        transaction_service.ledger_transaction_delete(55)


def test_transaction_list_pages_newest_first(transaction_service) -> None:
    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    for day in range(1, 6):
        transaction_service.ledger_transaction_add(
            instrument.instrument_id,
            _fields("BUY", f"2026-01-0{day}", "1", "10"),
        )

    rows, total = transaction_service.ledger_transaction_list(instrument.instrument_id, limit=2, offset=1)

    assert total == 5
    assert [row.effective_date for row in rows] == [date(2026, 1, 4), date(2026, 1, 3)]


def test_build_transaction_request_quantizes_to_storage_scale() -> None:
    """Quantize quantity and amount before storage and derive unit price."""

    request = ledger_build_transaction_request(
        3,
        _fields("SELL", "2026-02-02", Decimal("3.000000004"), "100.005"),
    )

    assert request.quantity == Decimal("3.00000000")
    assert request.total_amount == Decimal("100.01")
    assert request.unit_price == Decimal("33.33666667")
    assert request.effective_date == date(2026, 2, 2)


def test_build_transaction_request_names_the_oversized_field() -> None:
    with pytest.raises(ValueError, match="total_amount exceeds 16 integer digits"):
        ledger_build_transaction_request(1, _fields("BUY", "2026-01-01", "1", "1e30"))
    with pytest.raises(ValueError, match="unit_price exceeds 10 integer digits"):
        ledger_build_transaction_request(1, _fields("BUY", "2026-01-01", "0.00000001", "1000000000000000"))


def test_transaction_add_rolls_back_when_aggregate_write_fails(transaction_service, ledger_repository) -> None:
    """Leave no transaction behind when the aggregate replacement fails.

    Returns:
        None: Assertions validate write and recompute atomicity.

    Raises:
        AssertionError: Raised when the write survives a failed recompute.
    """

    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    ledger_repository.fail_aggregate_writes = True

    with pytest.raises(RuntimeError):
        transaction_service.ledger_transaction_add(instrument.instrument_id, _fields("BUY", "2026-01-01", "10", "100"))

    assert ledger_repository.db_transaction_list_for_instrument(instrument.instrument_id) == []
    assert ledger_repository.aggregate_write_count == 0

    ledger_repository.fail_aggregate_writes = False
    retried = transaction_service.ledger_transaction_add(
        instrument.instrument_id,
        _fields("BUY", "2026-01-01", "10", "100"),
    )
    assert retried.aggregate.total_shares == Decimal("10")


def test_transaction_update_and_delete_roll_back_when_aggregate_write_fails(
    transaction_service,
    ledger_repository,
) -> None:
    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    added = transaction_service.ledger_transaction_add(instrument.instrument_id, _fields("BUY", "2026-01-01", "10", "100"))
    ledger_repository.fail_aggregate_writes = True

    with pytest.raises(RuntimeError):
        transaction_service.ledger_transaction_update(
            added.transaction.transaction_id,
            _fields("BUY", "2026-01-01", "20", "100"),
        )
    with pytest.raises(RuntimeError):
        transaction_service.ledger_transaction_delete(added.transaction.transaction_id)

    assert ledger_repository.db_transaction_list_for_instrument(instrument.instrument_id) == [added.transaction]
    assert transaction_service.ledger_instrument_get(instrument.instrument_id).aggregate == added.aggregate


def test_transaction_add_rejects_history_whose_aggregate_overflows(transaction_service, ledger_repository) -> None:
    """Reject a BUY that pushes held shares past the aggregate column and keep the prior history."""

    instrument = transaction_service.ledger_instrument_register("ACME", "Acme Corp")
    first = transaction_service.ledger_transaction_add(
        instrument.instrument_id,
        _fields("BUY", "2026-01-01", "9999999999", "10"),
    )

    with pytest.raises(ValueError, match="total_shares exceeds 10 integer digits"):
        transaction_service.ledger_transaction_add(
            instrument.instrument_id,
            _fields("BUY", "2026-01-02", "9999999999", "10"),
        )

    assert ledger_repository.db_transaction_list_for_instrument(instrument.instrument_id) == [first.transaction]
    assert transaction_service.ledger_instrument_get(instrument.instrument_id).aggregate == first.aggregate


def _seed_audit_history(transaction_service) -> tuple[int, int]:
    acme = transaction_service.ledger_instrument_register("ACME", "Acme Corp").instrument_id
    beta = transaction_service.ledger_instrument_register("BETA", "Beta Industries").instrument_id
    transaction_service.ledger_transaction_add(acme, _fields("BUY", "2026-01-05", "10", "1000"))
    transaction_service.ledger_transaction_add(beta, _fields("BUY", "2026-01-05", "4", "400", notes="rebalance"))
    transaction_service.ledger_transaction_add(acme, _fields("SELL", "2026-01-09", "5", "600"))
    transaction_service.ledger_transaction_add(beta, _fields("DIVIDEND", "2026-01-09", None, "8"))
    return acme, beta


def test_transaction_audit_groups_by_date_newest_first(transaction_service) -> None:
    """Bucket rows across instruments by date, newest date first, rows newest first."""

    _seed_audit_history(transaction_service)

    groups = transaction_service.ledger_transaction_audit(group_by="date")

    assert [group.key for group in groups] == ["2026-01-09", "2026-01-05"]
    assert groups[0].effective_date == date(2026, 1, 9)
    assert groups[0].symbol is None
    assert [(row.symbol, row.transaction.kind) for row in groups[0].transactions] == [
        ("BETA", "INCOME"),
        ("ACME", "SELL"),
    ]


def test_transaction_audit_groups_by_instrument_and_date_instrument(transaction_service) -> None:
    acme, beta = _seed_audit_history(transaction_service)

    by_instrument = transaction_service.ledger_transaction_audit(group_by="instrument")
    by_date_instrument = transaction_service.ledger_transaction_audit(group_by="date_instrument")

    assert [(group.key, group.instrument_id, len(group.transactions)) for group in by_instrument] == [
        ("BETA", beta, 2),
        ("ACME", acme, 2),
    ]
    assert [group.key for group in by_date_instrument] == [
        "2026-01-09_BETA",
        "2026-01-09_ACME",
        "2026-01-05_BETA",
        "2026-01-05_ACME",
    ]
    assert by_date_instrument[0].effective_date == date(2026, 1, 9)
    assert by_date_instrument[0].symbol == "BETA"


def test_transaction_audit_filters_by_search_kind_and_instrument(transaction_service) -> None:
    """Match search text against symbol, name, and notes; accept the DIVIDEND alias as a kind filter."""

    acme, _ = _seed_audit_history(transaction_service)

    by_notes = transaction_service.ledger_transaction_audit(group_by="none", search_text="REBAL")
    by_name = transaction_service.ledger_transaction_audit(group_by="none", search_text="industries")
    by_kind = transaction_service.ledger_transaction_audit(group_by="kind", kind="dividend")
    by_instrument = transaction_service.ledger_transaction_audit(group_by="kind", instrument_id=acme)

    assert [row.transaction.notes for row in by_notes[0].transactions] == ["rebalance"]
    assert {row.symbol for row in by_name[0].transactions} == {"BETA"}
    assert [(group.key, group.kind) for group in by_kind] == [("INCOME", "INCOME")]
    assert [group.key for group in by_instrument] == ["SELL", "BUY"]


def test_transaction_audit_none_mode_always_returns_one_group(transaction_service) -> None:
    _seed_audit_history(transaction_service)

    groups = transaction_service.ledger_transaction_audit(group_by="none", search_text="no such text")

    assert len(groups) == 1
    assert groups[0].key == "all"
    assert groups[0].transactions == ()


def test_transaction_audit_rejects_invalid_requests(transaction_service) -> None:
    with pytest.raises(ValueError, match="group_by"):
        transaction_service.ledger_transaction_audit(group_by="week")
    with pytest.raises(ValueError):
        transaction_service.ledger_transaction_audit(kind="TRANSFER")
    with pytest.raises(ValueError, match="from_date"):
        transaction_service.ledger_transaction_audit(from_date=date(2026, 2, 1), to_date=date(2026, 1, 1))
    with pytest.raises(InstrumentNotFoundError):
        transaction_service.ledger_transaction_audit(instrument_id=99)


def test_group_audit_rows_without_rows_yields_no_keyed_groups() -> None:
    assert ledger_group_audit_rows([], "date") == []
    assert len(ledger_group_audit_rows([], "none")) == 1
