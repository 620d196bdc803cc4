"""Instrument registration, transaction mutation, and audit workflows.

Every mutation writes to the store and recomputes the instrument's aggregate
in one store transaction while holding the instrument lock. A history that
fails replay is never persisted, and callers always observe the aggregate
that matches the history they just changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from stock_ledger.db import (
    InstrumentNotFoundError,
    TRANSACTION_MUTATION_DELETE,
    TRANSACTION_MUTATION_INSERT,
    TRANSACTION_MUTATION_UPDATE,
    InstrumentRecord,
    InstrumentTransactionRecord,
    LedgerRepositoryPort,
    LedgerTransactionMutation,
    LedgerTransactionRecord,
    LedgerTransactionWriteRequest,
    PositionAggregateRecord,
    TransactionNotFoundError,
)
from stock_ledger.domain import (
    DECIMAL_ZERO,
    domain_decimal_parse,
    domain_decimal_parse_optional,
    domain_decimal_quantize_currency,
    domain_decimal_quantize_shares,
    domain_kind_requires_quantity,
    domain_normalize_transaction_kind,
)

from .recompute_service import PositionAggregateRecomputeService

logger = logging.getLogger(__name__)

_INSTRUMENT_SYMBOL_MAX_LENGTH = 10

AUDIT_GROUP_BY_NONE = "none"
AUDIT_GROUP_BY_DATE = "date"
AUDIT_GROUP_BY_INSTRUMENT = "instrument"
AUDIT_GROUP_BY_KIND = "kind"
AUDIT_GROUP_BY_DATE_INSTRUMENT = "date_instrument"
AUDIT_GROUP_MODES = (
    AUDIT_GROUP_BY_NONE,
    AUDIT_GROUP_BY_DATE,
    AUDIT_GROUP_BY_INSTRUMENT,
    AUDIT_GROUP_BY_KIND,
    AUDIT_GROUP_BY_DATE_INSTRUMENT,
)


@dataclass(frozen=True)
class TransactionFields:
    """Caller-supplied transaction fields before validation.

    Attributes:
        kind: Kind text (`BUY`, `SELL`, `INCOME`, or the `DIVIDEND` alias).
        effective_date: Business date as `date` or `YYYY-MM-DD` text.
        quantity: Share quantity for BUY/SELL; must be absent for INCOME.
        total_amount: Non-negative magnitude of cash moved.
        notes: Optional free-text note.
    """

    kind: str
    effective_date: date | str
    quantity: object | None
    total_amount: object
    notes: str | None = None


@dataclass(frozen=True)
class TransactionMutationResult:
    """Result of one transaction mutation and the aggregate it produced.

    Attributes:
        transaction: Inserted, updated, or deleted transaction row.
        aggregate: Replacement aggregate recomputed after the mutation.
    """

    transaction: LedgerTransactionRecord
    aggregate: PositionAggregateRecord


@dataclass(frozen=True)
class InstrumentPosition:
    """Instrument row joined with its cached aggregate.

    Attributes:
        instrument: Instrument row.
        aggregate: Cached aggregate, or None when no row exists yet.
    """

    instrument: InstrumentRecord
    aggregate: PositionAggregateRecord | None


@dataclass(frozen=True)
class TransactionAuditGroup:
    """One bucket of the cross-instrument transaction audit.

    Only the attributes named by the grouping mode are set.

    Attributes:
        key: Bucket key, unique within one audit result.
        transactions: Member rows, newest first.
        effective_date: Shared business date for `date` and `date_instrument` groups.
        instrument_id: Shared instrument for `instrument` and `date_instrument` groups.
        symbol: Symbol of the shared instrument.
        kind: Shared kind for `kind` groups.
    """

    key: str
    transactions: tuple[InstrumentTransactionRecord, ...]
    effective_date: date | None = None
    instrument_id: int | None = None
    symbol: str | None = None
    kind: str | None = None


class LedgerTransactionService:
    """Validate and apply instrument and transaction mutations."""

    def __init__(self, repository: LedgerRepositoryPort, recompute_service: PositionAggregateRecomputeService):
        """Initialize ledger transaction service dependencies.

        Args:
            repository: DB-layer ledger repository.
            recompute_service: Aggregate recomputation coordinator sharing the instrument locks.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when dependencies are invalid.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        if recompute_service is None:
            raise ValueError("recompute_service must not be None")
        self._repository = repository
        self._recompute_service = recompute_service

    def ledger_instrument_register(self, symbol: str, name: str) -> InstrumentRecord:
        """Register one instrument with a zero-state aggregate.

        Args:
            symbol: Ticker symbol, upper-cased on write.
            name: Instrument name.

        Returns:
            InstrumentRecord: Newly created instrument row.

        Raises:
            ValueError: Raised when symbol or name is invalid.
            InstrumentAlreadyExistsError: Raised when the symbol is already tracked.
        """

        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("symbol must not be blank")
        normalized_symbol = symbol.strip().upper()
        if len(normalized_symbol) > _INSTRUMENT_SYMBOL_MAX_LENGTH:
            raise ValueError(f"symbol must be at most {_INSTRUMENT_SYMBOL_MAX_LENGTH} characters")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("name must not be blank")

        instrument = self._repository.db_instrument_create(symbol=normalized_symbol, name=name.strip())
        logger.info("Registered instrument_id=%s symbol=%s", instrument.instrument_id, instrument.symbol)
        return instrument

    def ledger_instrument_get(self, instrument_id: int) -> InstrumentPosition:
        """Return one instrument with its cached aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
        """

        instrument = self._ledger_require_instrument(instrument_id)
        return InstrumentPosition(
            instrument=instrument,
            aggregate=self._repository.db_position_aggregate_get(instrument_id),
        )

    def ledger_instrument_list(self) -> list[InstrumentPosition]:
        """List every instrument with its cached aggregate, ordered by symbol."""

        aggregates_by_instrument = {
            aggregate.instrument_id: aggregate for aggregate in self._repository.db_position_aggregate_list()
        }
        return [
            InstrumentPosition(instrument=instrument, aggregate=aggregates_by_instrument.get(instrument.instrument_id))
            for instrument in self._repository.db_instrument_list()
        ]

    def ledger_transaction_add(self, instrument_id: int, fields: TransactionFields) -> TransactionMutationResult:
        """Insert one transaction and recompute its instrument.

        Args:
            instrument_id: Owning instrument identifier.
            fields: Caller-supplied transaction fields.

        Returns:
            TransactionMutationResult: Inserted row and recomputed aggregate.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
            ValueError: Raised when fields are invalid or the resulting history fails
                replay; nothing is written.
        """

        self._ledger_require_instrument(instrument_id)
        request = ledger_build_transaction_request(instrument_id, fields)

        transaction, aggregate = self._recompute_service.ledger_apply_mutation(
            LedgerTransactionMutation(
                operation=TRANSACTION_MUTATION_INSERT,
                instrument_id=instrument_id,
                request=request,
            )
        )

        logger.info(
            "Added %s transaction_id=%s instrument_id=%s",
            transaction.kind,
            transaction.transaction_id,
            instrument_id,
        )
        return TransactionMutationResult(transaction=transaction, aggregate=aggregate)

    def ledger_transaction_update(
        self,
        transaction_id: int,
        fields: TransactionFields,
        instrument_id: int | None = None,
    ) -> TransactionMutationResult:
        """Replace one transaction's fields and recompute its instrument.

        The owning instrument of a transaction never changes.

        Args:
            transaction_id: Transaction identifier.
            fields: Caller-supplied replacement fields.
            instrument_id: Optional expected owning instrument.

        Returns:
            TransactionMutationResult: Updated row and recomputed aggregate.

        Raises:
            TransactionNotFoundError: Raised when the transaction does not exist.
            ValueError: Raised when fields are invalid or instrument_id names another
                instrument; nothing is written.
        """

        existing_transaction = self._ledger_require_transaction(transaction_id)
        if instrument_id is not None and instrument_id != existing_transaction.instrument_id:
            raise ValueError("transaction instrument_id cannot be changed")
        instrument_id = existing_transaction.instrument_id
        request = ledger_build_transaction_request(instrument_id, fields)

        transaction, aggregate = self._recompute_service.ledger_apply_mutation(
            LedgerTransactionMutation(
                operation=TRANSACTION_MUTATION_UPDATE,
                instrument_id=instrument_id,
                request=request,
                transaction_id=transaction_id,
            )
        )

        logger.info("Updated transaction_id=%s instrument_id=%s", transaction_id, instrument_id)
        return TransactionMutationResult(transaction=transaction, aggregate=aggregate)

    def ledger_transaction_delete(self, transaction_id: int) -> TransactionMutationResult:
        """Delete one transaction and recompute its instrument.

        Args:
            transaction_id: Transaction identifier.

        Returns:
            TransactionMutationResult: Deleted row and recomputed aggregate.

        Raises:
            TransactionNotFoundError: Raised when the transaction does not exist.
        """

        instrument_id = self._ledger_require_transaction(transaction_id).instrument_id

        transaction, aggregate = self._recompute_service.ledger_apply_mutation(
            LedgerTransactionMutation(
                operation=TRANSACTION_MUTATION_DELETE,
                instrument_id=instrument_id,
                transaction_id=transaction_id,
            )
        )

        logger.info("Deleted transaction_id=%s instrument_id=%s", transaction_id, instrument_id)
        return TransactionMutationResult(transaction=transaction, aggregate=aggregate)

    def ledger_transaction_list(
        self,
        instrument_id: int,
        limit: int,
        offset: int,
    ) -> tuple[list[LedgerTransactionRecord], int]:
        """List one page of an instrument's transactions, newest first.

        Raises:
            InstrumentNotFoundError: Raised when the instrument is not registered.
        """

        self._ledger_require_instrument(instrument_id)
        return self._repository.db_transaction_list_page(instrument_id=instrument_id, limit=limit, offset=offset)

    def ledger_transaction_audit(
        self,
        group_by: str = AUDIT_GROUP_BY_DATE,
        search_text: str | None = None,
        instrument_id: int | None = None,
        kind: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[TransactionAuditGroup]:
        """Search transactions across instruments and bucket them for review.

        Args:
            group_by: One of `none`, `date`, `instrument`, `kind`, `date_instrument`.
            search_text: Optional case-insensitive match over symbol, name, and notes.
            instrument_id: Optional instrument filter.
            kind: Optional kind filter; `DIVIDEND` is accepted as `INCOME`.
            from_date: Optional inclusive lower effective-date bound.
            to_date: Optional inclusive upper effective-date bound.

        Returns:
            list[TransactionAuditGroup]: Groups in order of their newest member.

        Raises:
            InstrumentNotFoundError: Raised when instrument_id is not registered.
            ValueError: Raised when a filter or grouping mode is invalid.
        """

        if group_by not in AUDIT_GROUP_MODES:
            raise ValueError(f"group_by must be one of {', '.join(AUDIT_GROUP_MODES)}")
        if from_date is not None and to_date is not None and from_date > to_date:
            raise ValueError("from_date must be on or before to_date")
        if instrument_id is not None:
            self._ledger_require_instrument(instrument_id)
        normalized_kind = None if kind is None else domain_normalize_transaction_kind(kind)

        rows = self._repository.db_transaction_search(
            instrument_id=instrument_id,
            kind=normalized_kind,
            search_text=search_text,
            from_date=from_date,
            to_date=to_date,
        )
        groups = ledger_group_audit_rows(rows, group_by)
        logger.debug("Audit matched %s transactions in %s groups group_by=%s", len(rows), len(groups), group_by)
        return groups

    def _ledger_require_instrument(self, instrument_id: int) -> InstrumentRecord:
        instrument = self._repository.db_instrument_get_by_id(instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(f"instrument not found instrument_id={instrument_id}")
        return instrument

    def _ledger_require_transaction(self, transaction_id: int) -> LedgerTransactionRecord:
        transaction = self._repository.db_transaction_get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"transaction not found transaction_id={transaction_id}")
        return transaction


def ledger_build_transaction_request(instrument_id: int, fields: TransactionFields) -> LedgerTransactionWriteRequest:
    """Validate caller fields into a store write request at persisted scales.

    Quantity and amount are quantized before storage so every later replay reads
    exactly the values that were validated here.

    Args:
        instrument_id: Owning instrument identifier.
        fields: Caller-supplied transaction fields.

    Returns:
        LedgerTransactionWriteRequest: Validated write request.

    Raises:
        ValueError: Raised for unsupported kinds, invalid dates, missing or
            non-positive BUY/SELL quantities, INCOME quantities, or negative amounts.
    """

    if fields is None:
        raise ValueError("fields must not be None")

    kind = domain_normalize_transaction_kind(fields.kind)
    effective_date = _ledger_parse_effective_date(fields.effective_date)

    total_amount = domain_decimal_quantize_currency(
        domain_decimal_parse(fields.total_amount, "total_amount"),
        "total_amount",
    )
    if total_amount < DECIMAL_ZERO:
        raise ValueError("total_amount must be >= 0")

    raw_quantity = domain_decimal_parse_optional(fields.quantity, "quantity")
    if domain_kind_requires_quantity(kind):
        if raw_quantity is None:
            raise ValueError(f"{kind} requires a quantity")
        quantity = domain_decimal_quantize_shares(raw_quantity, "quantity")
        if quantity <= DECIMAL_ZERO:
            raise ValueError(f"{kind} quantity must be > 0")
        unit_price = domain_decimal_quantize_shares(total_amount / quantity, "unit_price")
    else:
        if raw_quantity is not None:
            raise ValueError(f"{kind} must not carry a quantity")
        quantity = None
        unit_price = None

    notes = fields.notes.strip() if isinstance(fields.notes, str) and fields.notes.strip() else None

    return LedgerTransactionWriteRequest(
        instrument_id=instrument_id,
        kind=kind,
        effective_date=effective_date,
        quantity=quantity,
        total_amount=total_amount,
        unit_price=unit_price,
        notes=notes,
    )


def ledger_group_audit_rows(
    rows: list[InstrumentTransactionRecord],
    group_by: str,
) -> list[TransactionAuditGroup]:
    """Bucket newest-first audit rows, keeping groups in first-appearance order.

    `none` always yields exactly one group, even when there are no rows.

    Raises:
        ValueError: Raised when group_by is not a supported mode.
    """

    if group_by not in AUDIT_GROUP_MODES:
        raise ValueError(f"group_by must be one of {', '.join(AUDIT_GROUP_MODES)}")
    if group_by == AUDIT_GROUP_BY_NONE:
        return [TransactionAuditGroup(key="all", transactions=tuple(rows))]

    members: dict[str, list[InstrumentTransactionRecord]] = {}
    for row in rows:
        members.setdefault(_ledger_audit_group_key(row, group_by), []).append(row)

    groups = []
    for key, group_rows in members.items():
        first = group_rows[0]
        by_date = group_by in (AUDIT_GROUP_BY_DATE, AUDIT_GROUP_BY_DATE_INSTRUMENT)
        by_instrument = group_by in (AUDIT_GROUP_BY_INSTRUMENT, AUDIT_GROUP_BY_DATE_INSTRUMENT)
        groups.append(
            TransactionAuditGroup(
                key=key,
                transactions=tuple(group_rows),
                effective_date=first.transaction.effective_date if by_date else None,
                instrument_id=first.transaction.instrument_id if by_instrument else None,
                symbol=first.symbol if by_instrument else None,
                kind=first.transaction.kind if group_by == AUDIT_GROUP_BY_KIND else None,
            )
        )
    return groups


def _ledger_audit_group_key(row: InstrumentTransactionRecord, group_by: str) -> str:
    if group_by == AUDIT_GROUP_BY_DATE:
        return row.transaction.effective_date.isoformat()
    if group_by == AUDIT_GROUP_BY_INSTRUMENT:
        return row.symbol
    if group_by == AUDIT_GROUP_BY_KIND:
        return row.transaction.kind
    return f"{row.transaction.effective_date.isoformat()}_{row.symbol}"


def _ledger_parse_effective_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("effective_date must be a date or YYYY-MM-DD string")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as error:
        raise ValueError(f"effective_date must be a valid YYYY-MM-DD date string: {value}") from error


__all__ = [
    "AUDIT_GROUP_BY_DATE",
    "AUDIT_GROUP_BY_DATE_INSTRUMENT",
    "AUDIT_GROUP_BY_INSTRUMENT",
    "AUDIT_GROUP_BY_KIND",
    "AUDIT_GROUP_BY_NONE",
    "AUDIT_GROUP_MODES",
    "InstrumentPosition",
    "LedgerTransactionService",
    "TransactionAuditGroup",
    "TransactionFields",
    "TransactionMutationResult",
    "ledger_build_transaction_request",
    "ledger_group_audit_rows",
]
