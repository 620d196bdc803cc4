"""Shared in-memory ledger repository and service fixtures."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from stock_ledger.analytics import ActivityReportService, DaywiseReportService
from stock_ledger.db import (
    TRANSACTION_MUTATION_DELETE,
    TRANSACTION_MUTATION_INSERT,
    InstrumentAlreadyExistsError,
    InstrumentHoldingRecord,
    InstrumentRecord,
    InstrumentTransactionRecord,
    LedgerTransactionMutation,
    LedgerTransactionRecord,
    LedgerTransactionWriteRequest,
    PositionAggregateComputeFn,
    PositionAggregateRecord,
    TransactionNotFoundError,
)
from stock_ledger.domain import DECIMAL_ZERO
from stock_ledger.ledger import InstrumentLockRegistry, LedgerTransactionService, PositionAggregateRecomputeService


class InMemoryLedgerRepository:
    """Thread-safe in-memory implementation of the ledger repository port."""

    def __init__(self) -> None:
        self._guard = threading.RLock()
        self._instruments: dict[int, InstrumentRecord] = {}
        self._transactions: dict[int, LedgerTransactionRecord] = {}
        self._aggregates: dict[int, PositionAggregateRecord] = {}
        self._next_instrument_id = 1
        self._next_transaction_id = 1
        self.fail_aggregate_writes = False
        self.aggregate_write_count = 0
        self.recompute_failures: dict[int, Exception] = {}

    def db_instrument_create(self, symbol: str, name: str) -> InstrumentRecord:
        with self._guard:
            if any(instrument.symbol == symbol for instrument in self._instruments.values()):
                raise InstrumentAlreadyExistsError(f"instrument already exists symbol={symbol}")
            instrument = InstrumentRecord(
                instrument_id=self._next_instrument_id,
                symbol=symbol,
                name=name,
                created_at_utc=datetime.now(timezone.utc),
            )
            self._next_instrument_id += 1
            self._instruments[instrument.instrument_id] = instrument
            self._aggregates[instrument.instrument_id] = PositionAggregateRecord(
                instrument_id=instrument.instrument_id,
                total_shares=DECIMAL_ZERO,
                total_invested=DECIMAL_ZERO,
                average_cost=DECIMAL_ZERO,
                realized_profit=DECIMAL_ZERO,
                updated_at_utc=datetime.now(timezone.utc),
            )
            return instrument

    def db_instrument_get_by_id(self, instrument_id: int) -> InstrumentRecord | None:
        with self._guard:
            return self._instruments.get(instrument_id)

    def db_instrument_list(self) -> list[InstrumentRecord]:
        with self._guard:
            return sorted(self._instruments.values(), key=lambda instrument: instrument.symbol)

    def db_transaction_mutate_and_recompute(
        self,
        mutation: LedgerTransactionMutation,
        compute: PositionAggregateComputeFn,
    ) -> tuple[LedgerTransactionRecord, PositionAggregateRecord]:
        with self._guard:
            saved_transactions = dict(self._transactions)
            saved_next_transaction_id = self._next_transaction_id
            try:
                if mutation.operation == TRANSACTION_MUTATION_INSERT:
                    transaction = self._stub_insert(mutation.request)
                elif mutation.operation == TRANSACTION_MUTATION_DELETE:
                    transaction = self._stub_delete(mutation.transaction_id, mutation.instrument_id)
                else:
                    transaction = self._stub_update(mutation.transaction_id, mutation.request)
                aggregate = self._stub_replace_aggregate(mutation.instrument_id, compute)
            except Exception:
                self._transactions = saved_transactions
                self._next_transaction_id = saved_next_transaction_id
                raise
            return transaction, aggregate

    def _stub_insert(self, request: LedgerTransactionWriteRequest) -> LedgerTransactionRecord:
        now = datetime.now(timezone.utc)
        transaction = LedgerTransactionRecord(
            transaction_id=self._next_transaction_id,
            instrument_id=request.instrument_id,
            kind=request.kind,
            effective_date=request.effective_date,
            quantity=request.quantity,
            total_amount=request.total_amount,
            unit_price=request.unit_price,
            notes=request.notes,
            created_at_utc=now,
            updated_at_utc=now,
        )
        self._next_transaction_id += 1
        self._transactions[transaction.transaction_id] = transaction
        return transaction

    def _stub_update(self, transaction_id: int, request: LedgerTransactionWriteRequest) -> LedgerTransactionRecord:
        existing = self._transactions.get(transaction_id)
        if existing is None or existing.instrument_id != request.instrument_id:
            raise TransactionNotFoundError(f"transaction not found transaction_id={transaction_id}")
        updated = replace(
            existing,
            kind=request.kind,
            effective_date=request.effective_date,
            quantity=request.quantity,
            total_amount=request.total_amount,
            unit_price=request.unit_price,
            notes=request.notes,
            updated_at_utc=datetime.now(timezone.utc),
        )
        self._transactions[transaction_id] = updated
        return updated

    def _stub_delete(self, transaction_id: int, instrument_id: int) -> LedgerTransactionRecord:
        existing = self._transactions.get(transaction_id)
        if existing is None or existing.instrument_id != instrument_id:
            raise TransactionNotFoundError(f"transaction not found transaction_id={transaction_id}")
        return self._transactions.pop(transaction_id)

    def _stub_replace_aggregate(
        self,
        instrument_id: int,
        compute: PositionAggregateComputeFn,
    ) -> PositionAggregateRecord:
        if instrument_id in self.recompute_failures:
            raise self.recompute_failures[instrument_id]
        write_request = compute(self.db_transaction_list_for_instrument(instrument_id))
        if self.fail_aggregate_writes:
            raise RuntimeError("position aggregate recompute failed")
        aggregate = PositionAggregateRecord(
            instrument_id=write_request.instrument_id,
            total_shares=write_request.total_shares,
            total_invested=write_request.total_invested,
            average_cost=write_request.average_cost,
            realized_profit=write_request.realized_profit,
            updated_at_utc=datetime.now(timezone.utc),
        )
        self._aggregates[instrument_id] = aggregate
        self.aggregate_write_count += 1
        return aggregate

    def db_transaction_get_by_id(self, transaction_id: int) -> LedgerTransactionRecord | None:
        with self._guard:
            return self._transactions.get(transaction_id)

    def db_transaction_list_for_instrument(self, instrument_id: int) -> list[LedgerTransactionRecord]:
        with self._guard:
            return sorted(
                (row for row in self._transactions.values() if row.instrument_id == instrument_id),
                key=lambda row: (row.effective_date, row.transaction_id),
            )

    def db_transaction_list_page(
        self,
        instrument_id: int,
        limit: int,
        offset: int,
    ) -> tuple[list[LedgerTransactionRecord], int]:
        rows = list(reversed(self.db_transaction_list_for_instrument(instrument_id)))
        return rows[offset : offset + limit], len(rows)

    def db_transaction_list_through_date(
        self,
        through_date: date,
        instrument_id: int | None = None,
    ) -> list[InstrumentTransactionRecord]:
        with self._guard:
            rows = sorted(
                (
                    row
                    for row in self._transactions.values()
                    if row.effective_date <= through_date and (instrument_id is None or row.instrument_id == instrument_id)
                ),
                key=lambda row: (row.effective_date, row.transaction_id),
            )
            return [self._stub_with_instrument(row) for row in rows]

    def db_transaction_search(
        self,
        instrument_id: int | None = None,
        kind: str | None = None,
        search_text: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[InstrumentTransactionRecord]:
        needle = search_text.strip().lower() if search_text and search_text.strip() else None
        with self._guard:
            matches = []
            for row in self._transactions.values():
                joined = self._stub_with_instrument(row)
                if instrument_id is not None and row.instrument_id != instrument_id:
                    continue
                if kind is not None and row.kind != kind:
                    continue
                if from_date is not None and row.effective_date < from_date:
                    continue
                if to_date is not None and row.effective_date > to_date:
                    continue
                if needle is not None and not any(
                    needle in (text or "").lower() for text in (joined.symbol, joined.name, row.notes)
                ):
                    continue
                matches.append(joined)
            return sorted(
                matches,
                key=lambda joined: (joined.transaction.effective_date, joined.transaction.transaction_id),
                reverse=True,
            )

    def db_position_holding_list(self) -> list[InstrumentHoldingRecord]:
        with self._guard:
            return [
                InstrumentHoldingRecord(
                    instrument_id=instrument.instrument_id,
                    symbol=instrument.symbol,
                    name=instrument.name,
                    total_shares=self._aggregates[instrument.instrument_id].total_shares,
                    total_invested=self._aggregates[instrument.instrument_id].total_invested,
                )
                for instrument in self.db_instrument_list()
                if instrument.instrument_id in self._aggregates
                and self._aggregates[instrument.instrument_id].total_shares > DECIMAL_ZERO
            ]

    def _stub_with_instrument(self, row: LedgerTransactionRecord) -> InstrumentTransactionRecord:
        instrument = self._instruments[row.instrument_id]
        return InstrumentTransactionRecord(transaction=row, symbol=instrument.symbol, name=instrument.name)

    def db_position_aggregate_get(self, instrument_id: int) -> PositionAggregateRecord | None:
        with self._guard:
            return self._aggregates.get(instrument_id)

    def db_position_aggregate_list(self) -> list[PositionAggregateRecord]:
        with self._guard:
            return [self._aggregates[instrument_id] for instrument_id in sorted(self._aggregates)]

    def db_position_aggregate_recompute(
        self,
        instrument_id: int,
        compute: PositionAggregateComputeFn,
    ) -> PositionAggregateRecord:
        with self._guard:
            return self._stub_replace_aggregate(instrument_id, compute)

    def stub_insert_raw_transaction(self, transaction: LedgerTransactionRecord) -> None:
        """Store a row without service validation, simulating legacy bad data."""

        with self._guard:
            self._transactions[transaction.transaction_id] = transaction
            self._next_transaction_id = max(self._next_transaction_id, transaction.transaction_id + 1)


@pytest.fixture
def ledger_repository() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


@pytest.fixture
def recompute_service(ledger_repository: InMemoryLedgerRepository) -> PositionAggregateRecomputeService:
    return PositionAggregateRecomputeService(repository=ledger_repository, lock_registry=InstrumentLockRegistry())


@pytest.fixture
def transaction_service(
    ledger_repository: InMemoryLedgerRepository,
    recompute_service: PositionAggregateRecomputeService,
) -> LedgerTransactionService:
    return LedgerTransactionService(repository=ledger_repository, recompute_service=recompute_service)


@pytest.fixture
def report_service(ledger_repository: InMemoryLedgerRepository) -> DaywiseReportService:
    return DaywiseReportService(repository=ledger_repository)


@pytest.fixture
def activity_service(ledger_repository: InMemoryLedgerRepository) -> ActivityReportService:
    return ActivityReportService(repository=ledger_repository)
