"""Database service for instruments, ledger transactions, and cached position aggregates."""
# pylint: disable=duplicate-code

from __future__ import annotations

import hashlib
import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from stock_ledger.db.interfaces import (
    TRANSACTION_MUTATION_DELETE,
    TRANSACTION_MUTATION_INSERT,
    TRANSACTION_MUTATION_UPDATE,
    TRANSACTION_MUTATIONS,
    InstrumentAlreadyExistsError,
    InstrumentHoldingRecord,
    InstrumentRecord,
    InstrumentTransactionRecord,
    LedgerRepositoryPort,
    LedgerTransactionMutation,
    LedgerTransactionRecord,
    LedgerTransactionWriteRequest,
    PositionAggregateComputeFn,
    PositionAggregateRecord,
    PositionAggregateWriteRequest,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

_TRANSACTION_COLUMNS = (
    "transaction_id",
    "instrument_id",
    "kind",
    "effective_date",
    "quantity",
    "total_amount",
    "unit_price",
    "notes",
    "created_at_utc",
    "updated_at_utc",
)
_TRANSACTION_SELECT_COLUMNS = "SELECT " + ", ".join(_TRANSACTION_COLUMNS) + " FROM ledger_transaction "
_TRANSACTION_RETURNING_COLUMNS = "RETURNING " + ", ".join(_TRANSACTION_COLUMNS)
_INSTRUMENT_TRANSACTION_SELECT = (
    "SELECT "
    + ", ".join(f"t.{column}" for column in _TRANSACTION_COLUMNS)
    + ", i.symbol, i.name "
    + "FROM ledger_transaction t JOIN instrument i ON i.instrument_id = t.instrument_id "
)
_TRANSACTION_INSERT_SQL = (
    "INSERT INTO ledger_transaction ("
    "instrument_id, kind, effective_date, quantity, total_amount, unit_price, notes"
    ") VALUES ("
    ":instrument_id, :kind, CAST(:effective_date AS date), CAST(:quantity AS numeric), "
    "CAST(:total_amount AS numeric), CAST(:unit_price AS numeric), :notes"
    ") "
    + _TRANSACTION_RETURNING_COLUMNS
)
_TRANSACTION_UPDATE_SQL = (
    "UPDATE ledger_transaction SET "
    "kind = :kind, "
    "effective_date = CAST(:effective_date AS date), "
    "quantity = CAST(:quantity AS numeric), "
    "total_amount = CAST(:total_amount AS numeric), "
    "unit_price = CAST(:unit_price AS numeric), "
    "notes = :notes, "
    "updated_at_utc = now() "
    "WHERE transaction_id = :transaction_id AND instrument_id = :instrument_id "
    + _TRANSACTION_RETURNING_COLUMNS
)
_TRANSACTION_DELETE_SQL = (
    "DELETE FROM ledger_transaction "
    "WHERE transaction_id = :transaction_id AND instrument_id = :instrument_id "
    + _TRANSACTION_RETURNING_COLUMNS
)
_AGGREGATE_SELECT_COLUMNS = (
    "SELECT instrument_id, total_shares, total_invested, average_cost, realized_profit, updated_at_utc "
    "FROM position_aggregate "
)
_AGGREGATE_UPSERT_SQL = (
    "INSERT INTO position_aggregate ("
    "instrument_id, total_shares, total_invested, average_cost, realized_profit, updated_at_utc"
    ") VALUES ("
    ":instrument_id, CAST(:total_shares AS numeric), CAST(:total_invested AS numeric), "
    "CAST(:average_cost AS numeric), CAST(:realized_profit AS numeric), now()"
    ") ON CONFLICT (instrument_id) DO UPDATE SET "
    "total_shares = EXCLUDED.total_shares, "
    "total_invested = EXCLUDED.total_invested, "
    "average_cost = EXCLUDED.average_cost, "
    "realized_profit = EXCLUDED.realized_profit, "
    "updated_at_utc = EXCLUDED.updated_at_utc "
    "RETURNING instrument_id, total_shares, total_invested, average_cost, realized_profit, updated_at_utc"
)


class SQLAlchemyLedgerRepository(LedgerRepositoryPort):
    """SQLAlchemy implementation for ledger transaction and aggregate DB operations.

    Transaction writes and aggregate recomputation hold a transaction-scoped
    PostgreSQL advisory lock keyed by instrument id, so concurrent writers in
    other processes serialize on the same write-read-compute-replace unit.
    """

    _AGGREGATE_LOCK_NAMESPACE = "position_aggregate_recompute"

    def __init__(self, engine: Engine):
        """Initialize ledger repository.

        Args:
            engine: SQLAlchemy engine used for persistence and reads.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine
        self._aggregate_lock_namespace_key = self._db_ledger_build_namespace_key(self._AGGREGATE_LOCK_NAMESPACE)

    def db_instrument_create(self, symbol: str, name: str) -> InstrumentRecord:
        """Register one instrument and its zero-state aggregate in one transaction.

        Args:
            symbol: Upper-cased ticker symbol.
            name: Instrument name.

        Returns:
            InstrumentRecord: Newly created instrument row.

        Raises:
            InstrumentAlreadyExistsError: Raised when the symbol is already registered.
            ValueError: Raised when input values are blank.
            RuntimeError: Raised when persistence fails.
        """

        normalized_symbol = self._db_ledger_validate_non_empty_text(symbol, "symbol").upper()
        normalized_name = self._db_ledger_validate_non_empty_text(name, "name")

        try:
            with self._engine.begin() as connection:
                created_row = connection.execute(
                    text(
                        "INSERT INTO instrument (symbol, name) VALUES (:symbol, :name) "
                        "ON CONFLICT (symbol) DO NOTHING "
                        "RETURNING instrument_id, symbol, name, created_at_utc"
                    ),
                    {"symbol": normalized_symbol, "name": normalized_name},
                ).mappings().first()
                if created_row is None:
                    raise InstrumentAlreadyExistsError(f"instrument already exists symbol={normalized_symbol}")

                connection.execute(
                    text(_AGGREGATE_UPSERT_SQL),
                    {
                        "instrument_id": created_row["instrument_id"],
                        "total_shares": "0",
                        "total_invested": "0",
                        "average_cost": "0",
                        "realized_profit": "0",
                    },
                )
        except SQLAlchemyError as error:
            raise RuntimeError("instrument create failed") from error

        return self._db_ledger_map_instrument_row(created_row)

    def db_instrument_get_by_id(self, instrument_id: int) -> InstrumentRecord | None:
        """Fetch one instrument by primary key.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            InstrumentRecord | None: Matching row, or None when absent.

        Raises:
            ValueError: Raised when id is invalid.
            RuntimeError: Raised when database read fails.
        """

        normalized_instrument_id = self._db_ledger_validate_positive_int(instrument_id, "instrument_id")

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(
                        "SELECT instrument_id, symbol, name, created_at_utc "
                        "FROM instrument WHERE instrument_id = :instrument_id"
                    ),
                    {"instrument_id": normalized_instrument_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("instrument read failed") from error

        return None if row is None else self._db_ledger_map_instrument_row(row)

    def db_instrument_list(self) -> list[InstrumentRecord]:
        """List registered instruments ordered by symbol.

        Returns:
            list[InstrumentRecord]: Deterministically ordered instrument rows.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        "SELECT instrument_id, symbol, name, created_at_utc "
                        "FROM instrument ORDER BY symbol asc, instrument_id asc"
                    )
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("instrument list failed") from error

        return [self._db_ledger_map_instrument_row(row) for row in rows]

    def db_transaction_mutate_and_recompute(
        self,
        mutation: LedgerTransactionMutation,
        compute: PositionAggregateComputeFn,
    ) -> tuple[LedgerTransactionRecord, PositionAggregateRecord]:
        """Apply one transaction write and replace the aggregate under the advisory lock.

        The lock, the write, the replay read, and the aggregate upsert share one
        `engine.begin()` block, so a failed computation or upsert rolls the
        write back as well.

        Args:
            mutation: Insert, update, or delete to apply.
            compute: Pure function mapping ordered transactions to the new aggregate.

        Returns:
            tuple[LedgerTransactionRecord, PositionAggregateRecord]: Written row and replacement aggregate.

        Raises:
            TransactionNotFoundError: Raised when the update or delete target is absent.
            ValueError: Raised when the mutation or computed aggregate is invalid.
            RuntimeError: Raised when persistence fails.
        """

        statement, parameters = self._db_ledger_build_mutation_statement(mutation)
        instrument_id = parameters["instrument_id"]

        try:
            with self._engine.begin() as connection:
                self._db_ledger_lock_instrument(connection, instrument_id)
                row = connection.execute(text(statement), parameters).mappings().first()
                if row is None:
                    raise TransactionNotFoundError(
                        f"transaction not found transaction_id={parameters.get('transaction_id')}"
                    )
                transaction = self._db_ledger_map_transaction_row(row)
                aggregate, replayed_count = self._db_ledger_replace_aggregate(connection, instrument_id, compute)
        except SQLAlchemyError as error:
            raise RuntimeError(f"transaction {mutation.operation} failed") from error

        logger.debug(
            "Applied transaction %s transaction_id=%s and replaced aggregate instrument_id=%s from %s transactions",
            mutation.operation,
            transaction.transaction_id,
            instrument_id,
            replayed_count,
        )
        return transaction, aggregate

    def db_transaction_get_by_id(self, transaction_id: int) -> LedgerTransactionRecord | None:
        """Fetch one transaction by primary key.

        Args:
            transaction_id: Transaction identifier.

        Returns:
            LedgerTransactionRecord | None: Matching row, or None when absent.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        normalized_transaction_id = self._db_ledger_validate_positive_int(transaction_id, "transaction_id")

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(_TRANSACTION_SELECT_COLUMNS + "WHERE transaction_id = :transaction_id"),
                    {"transaction_id": normalized_transaction_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("transaction read failed") from error

        return None if row is None else self._db_ledger_map_transaction_row(row)

    def db_transaction_list_for_instrument(self, instrument_id: int) -> list[LedgerTransactionRecord]:
        """List every transaction of one instrument in replay order.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            list[LedgerTransactionRecord]: Rows ordered by effective date then transaction id.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        normalized_instrument_id = self._db_ledger_validate_positive_int(instrument_id, "instrument_id")

        try:
            with self._engine.connect() as connection:
                return self._db_ledger_select_replay_rows(connection, normalized_instrument_id)
        except SQLAlchemyError as error:
            raise RuntimeError("transaction list failed") from error

    def db_transaction_list_page(
        self,
        instrument_id: int,
        limit: int,
        offset: int,
    ) -> tuple[list[LedgerTransactionRecord], int]:
        """List one page of transactions newest first, with the instrument total.

        Args:
            instrument_id: Instrument identifier.
            limit: Maximum row count.
            offset: Number of rows to skip.

        Returns:
            tuple[list[LedgerTransactionRecord], int]: Page rows and total row count.

        Raises:
            ValueError: Raised when pagination arguments are invalid.
            RuntimeError: Raised when database read fails.
        """

        normalized_instrument_id = self._db_ledger_validate_positive_int(instrument_id, "instrument_id")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        _TRANSACTION_SELECT_COLUMNS
                        + "WHERE instrument_id = :instrument_id "
                        + "ORDER BY effective_date desc, transaction_id desc LIMIT :limit OFFSET :offset"
                    ),
                    {"instrument_id": normalized_instrument_id, "limit": limit, "offset": offset},
                ).mappings().all()
                total_count = connection.execute(
                    text("SELECT COUNT(*) FROM ledger_transaction WHERE instrument_id = :instrument_id"),
                    {"instrument_id": normalized_instrument_id},
                ).scalar_one()
        except SQLAlchemyError as error:
            raise RuntimeError("transaction page read failed") from error

        return [self._db_ledger_map_transaction_row(row) for row in rows], int(total_count)

    def db_transaction_list_through_date(
        self,
        through_date: date,
        instrument_id: int | None = None,
    ) -> list[InstrumentTransactionRecord]:
        """List transactions dated on or before a bound in replay order.

        One statement reads every instrument in scope together with its symbol,
        so histories and symbols come from the same snapshot.

        Args:
            through_date: Inclusive upper effective-date bound.
            instrument_id: Optional single-instrument filter.

        Returns:
            list[InstrumentTransactionRecord]: Rows ordered by effective date then transaction id.

        Raises:
            ValueError: Raised when input values are invalid.
            RuntimeError: Raised when database read fails.
        """

        if not isinstance(through_date, date):
            raise ValueError("through_date must be a date")
        normalized_instrument_id = (
            None if instrument_id is None else self._db_ledger_validate_positive_int(instrument_id, "instrument_id")
        )

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        _INSTRUMENT_TRANSACTION_SELECT
                        + "WHERE t.effective_date <= CAST(:through_date AS date) "
                        + "AND (CAST(:instrument_id AS integer) IS NULL OR t.instrument_id = CAST(:instrument_id AS integer)) "
                        + "ORDER BY t.effective_date asc, t.transaction_id asc"
                    ),
                    {"through_date": through_date.isoformat(), "instrument_id": normalized_instrument_id},
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("report transaction read failed") from error

        return [self._db_ledger_map_instrument_transaction_row(row) for row in rows]

    def db_transaction_search(
        self,
        instrument_id: int | None = None,
        kind: str | None = None,
        search_text: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[InstrumentTransactionRecord]:
        """List transactions across instruments matching every given filter, newest first.

        `search_text` matches symbol, name, or notes case-insensitively; LIKE
        wildcards in it are matched literally.

        Args:
            instrument_id: Optional owning instrument filter.
            kind: Optional normalized kind filter.
            search_text: Optional substring filter.
            from_date: Optional inclusive lower effective-date bound.
            to_date: Optional inclusive upper effective-date bound.

        Returns:
            list[InstrumentTransactionRecord]: Matching rows ordered by effective date
                then transaction id, both descending.

        Raises:
            ValueError: Raised when filter values are invalid.
            RuntimeError: Raised when database read fails.
        """

        normalized_instrument_id = (
            None if instrument_id is None else self._db_ledger_validate_positive_int(instrument_id, "instrument_id")
        )
        normalized_kind = None if kind is None else self._db_ledger_validate_non_empty_text(kind, "kind")
        search_pattern = None
        if search_text is not None and search_text.strip():
            search_pattern = f"%{self._db_ledger_escape_like(search_text.strip())}%"
        for bound_name, bound_value in (("from_date", from_date), ("to_date", to_date)):
            if bound_value is not None and not isinstance(bound_value, date):
                raise ValueError(f"{bound_name} must be a date")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        _INSTRUMENT_TRANSACTION_SELECT
                        + "WHERE (CAST(:instrument_id AS integer) IS NULL OR t.instrument_id = CAST(:instrument_id AS integer)) "
                        + "AND (CAST(:kind AS text) IS NULL OR t.kind = CAST(:kind AS text)) "
                        + "AND (CAST(:from_date AS date) IS NULL OR t.effective_date >= CAST(:from_date AS date)) "
                        + "AND (CAST(:to_date AS date) IS NULL OR t.effective_date <= CAST(:to_date AS date)) "
                        + "AND (CAST(:search_pattern AS text) IS NULL "
                        + "OR i.symbol ILIKE CAST(:search_pattern AS text) ESCAPE '\\' "
                        + "OR i.name ILIKE CAST(:search_pattern AS text) ESCAPE '\\' "
                        + "OR t.notes ILIKE CAST(:search_pattern AS text) ESCAPE '\\') "
                        + "ORDER BY t.effective_date desc, t.transaction_id desc"
                    ),
                    {
                        "instrument_id": normalized_instrument_id,
                        "kind": normalized_kind,
                        "from_date": None if from_date is None else from_date.isoformat(),
                        "to_date": None if to_date is None else to_date.isoformat(),
                        "search_pattern": search_pattern,
                    },
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("transaction search failed") from error

        return [self._db_ledger_map_instrument_transaction_row(row) for row in rows]

    def db_position_aggregate_get(self, instrument_id: int) -> PositionAggregateRecord | None:
        """Fetch the cached aggregate of one instrument.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            PositionAggregateRecord | None: Cached row, or None when absent.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        normalized_instrument_id = self._db_ledger_validate_positive_int(instrument_id, "instrument_id")

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(_AGGREGATE_SELECT_COLUMNS + "WHERE instrument_id = :instrument_id"),
                    {"instrument_id": normalized_instrument_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("position aggregate read failed") from error

        return None if row is None else self._db_ledger_map_aggregate_row(row)

    def db_position_aggregate_list(self) -> list[PositionAggregateRecord]:
        """List every cached aggregate ordered by instrument id.

        Returns:
            list[PositionAggregateRecord]: Cached aggregate rows.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(_AGGREGATE_SELECT_COLUMNS + "ORDER BY instrument_id asc")
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("position aggregate list failed") from error

        return [self._db_ledger_map_aggregate_row(row) for row in rows]

    def db_position_holding_list(self) -> list[InstrumentHoldingRecord]:
        """List instruments whose cached aggregate holds shares, ordered by symbol.

        Returns:
            list[InstrumentHoldingRecord]: Held instruments with shares and invested cost.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        "SELECT i.instrument_id, i.symbol, i.name, a.total_shares, a.total_invested "
                        "FROM instrument i JOIN position_aggregate a ON a.instrument_id = i.instrument_id "
                        "WHERE a.total_shares > 0 "
                        "ORDER BY i.symbol asc"
                    )
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("position holding list failed") from error

        return [
            InstrumentHoldingRecord(
                instrument_id=int(row["instrument_id"]),
                symbol=row["symbol"],
                name=row["name"],
                total_shares=Decimal(row["total_shares"]),
                total_invested=Decimal(row["total_invested"]),
            )
            for row in rows
        ]

    def db_position_aggregate_recompute(
        self,
        instrument_id: int,
        compute: PositionAggregateComputeFn,
    ) -> PositionAggregateRecord:
        """Read, compute, and replace one aggregate under an instrument-scoped advisory lock.

        Args:
            instrument_id: Instrument identifier.
            compute: Pure function mapping ordered transactions to the new aggregate.

        Returns:
            PositionAggregateRecord: Persisted replacement row.

        Raises:
            ValueError: Raised when compute rejects transaction data or returns a foreign row.
            RuntimeError: Raised when persistence fails.
        """

        normalized_instrument_id = self._db_ledger_validate_positive_int(instrument_id, "instrument_id")

        try:
            with self._engine.begin() as connection:
                self._db_ledger_lock_instrument(connection, normalized_instrument_id)
                aggregate, replayed_count = self._db_ledger_replace_aggregate(
                    connection, normalized_instrument_id, compute
                )
        except SQLAlchemyError as error:
            raise RuntimeError("position aggregate recompute failed") from error

        logger.debug(
            "Replaced position aggregate instrument_id=%s from %s transactions",
            normalized_instrument_id,
            replayed_count,
        )
        return aggregate

    def _db_ledger_lock_instrument(self, connection: Any, instrument_id: int) -> None:
        """Take the transaction-scoped advisory lock of one instrument."""

        connection.execute(
            text("SELECT pg_advisory_xact_lock(:key_1, :key_2)"),
            {"key_1": self._aggregate_lock_namespace_key, "key_2": instrument_id},
        )

    def _db_ledger_replace_aggregate(
        self,
        connection: Any,
        instrument_id: int,
        compute: PositionAggregateComputeFn,
    ) -> tuple[PositionAggregateRecord, int]:
        """Replay one instrument on an open locked connection and upsert its aggregate.

        Returns:
            tuple[PositionAggregateRecord, int]: Persisted row and the number of replayed transactions.
        """

        transaction_rows = self._db_ledger_select_replay_rows(connection, instrument_id)
        write_request = compute(transaction_rows)
        if write_request.instrument_id != instrument_id:
            raise ValueError("computed aggregate instrument_id does not match recompute target")

        row = connection.execute(
            text(_AGGREGATE_UPSERT_SQL),
            self._db_ledger_build_aggregate_payload(write_request),
        ).mappings().one()
        return self._db_ledger_map_aggregate_row(row), len(transaction_rows)

    def _db_ledger_build_mutation_statement(
        self,
        mutation: LedgerTransactionMutation,
    ) -> tuple[str, dict[str, Any]]:
        """Validate one mutation and select its SQL statement and parameters.

        Args:
            mutation: Requested transaction write.

        Returns:
            tuple[str, dict[str, Any]]: SQL text and bound parameters, always carrying `instrument_id`.

        Raises:
            ValueError: Raised when the mutation is malformed.
        """

        if mutation is None:
            raise ValueError("mutation must not be None")
        if mutation.operation not in TRANSACTION_MUTATIONS:
            raise ValueError(f"mutation.operation must be one of {', '.join(TRANSACTION_MUTATIONS)}")
        instrument_id = self._db_ledger_validate_positive_int(mutation.instrument_id, "mutation.instrument_id")

        if mutation.operation == TRANSACTION_MUTATION_DELETE:
            return _TRANSACTION_DELETE_SQL, {
                "instrument_id": instrument_id,
                "transaction_id": self._db_ledger_validate_positive_int(
                    mutation.transaction_id, "mutation.transaction_id"
                ),
            }

        parameters = self._db_ledger_build_transaction_payload(mutation.request)
        if parameters["instrument_id"] != instrument_id:
            raise ValueError("mutation request instrument_id does not match mutation target")
        if mutation.operation == TRANSACTION_MUTATION_INSERT:
            return _TRANSACTION_INSERT_SQL, parameters

        if mutation.operation == TRANSACTION_MUTATION_UPDATE:
            parameters["transaction_id"] = self._db_ledger_validate_positive_int(
                mutation.transaction_id, "mutation.transaction_id"
            )
        return _TRANSACTION_UPDATE_SQL, parameters

    def _db_ledger_select_replay_rows(self, connection: Any, instrument_id: int) -> list[LedgerTransactionRecord]:
        """Select one instrument's transactions in replay order on an open connection."""

        rows = connection.execute(
            text(
                _TRANSACTION_SELECT_COLUMNS
                + "WHERE instrument_id = :instrument_id "
                + "ORDER BY effective_date asc, transaction_id asc"
            ),
            {"instrument_id": instrument_id},
        ).mappings().all()
        return [self._db_ledger_map_transaction_row(row) for row in rows]

    def _db_ledger_build_transaction_payload(self, request: LedgerTransactionWriteRequest) -> dict[str, Any]:
        """Validate one transaction write request and build SQL parameters.

        Args:
            request: Transaction write request.

        Returns:
            dict[str, Any]: SQL-ready request payload.

        Raises:
            ValueError: Raised when request values are invalid.
        """

        if request is None:
            raise ValueError("request must not be None")

        return {
            "instrument_id": self._db_ledger_validate_positive_int(request.instrument_id, "request.instrument_id"),
            "kind": self._db_ledger_validate_non_empty_text(request.kind, "request.kind"),
            "effective_date": request.effective_date.isoformat(),
            "quantity": None if request.quantity is None else str(request.quantity),
            "total_amount": str(request.total_amount),
            "unit_price": None if request.unit_price is None else str(request.unit_price),
            "notes": request.notes,
        }

    def _db_ledger_build_aggregate_payload(self, request: PositionAggregateWriteRequest) -> dict[str, Any]:
        """Build SQL parameters for one aggregate replacement."""

        return {
            "instrument_id": request.instrument_id,
            "total_shares": str(request.total_shares),
            "total_invested": str(request.total_invested),
            "average_cost": str(request.average_cost),
            "realized_profit": str(request.realized_profit),
        }

    def _db_ledger_map_instrument_row(self, row: Any) -> InstrumentRecord:
        return InstrumentRecord(
            instrument_id=int(row["instrument_id"]),
            symbol=row["symbol"],
            name=row["name"],
            created_at_utc=row["created_at_utc"],
        )

    def _db_ledger_map_transaction_row(self, row: Any) -> LedgerTransactionRecord:
        """Map SQLAlchemy row to typed transaction record.

        Args:
            row: SQLAlchemy row mapping.

        Returns:
            LedgerTransactionRecord: Typed transaction model.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return LedgerTransactionRecord(
            transaction_id=int(row["transaction_id"]),
            instrument_id=int(row["instrument_id"]),
            kind=row["kind"],
            effective_date=row["effective_date"],
            quantity=None if row["quantity"] is None else Decimal(row["quantity"]),
            total_amount=Decimal(row["total_amount"]),
            unit_price=None if row["unit_price"] is None else Decimal(row["unit_price"]),
            notes=row["notes"],
            created_at_utc=row["created_at_utc"],
            updated_at_utc=row["updated_at_utc"],
        )

    def _db_ledger_map_instrument_transaction_row(self, row: Any) -> InstrumentTransactionRecord:
        return InstrumentTransactionRecord(
            transaction=self._db_ledger_map_transaction_row(row),
            symbol=row["symbol"],
            name=row["name"],
        )

    def _db_ledger_map_aggregate_row(self, row: Any) -> PositionAggregateRecord:
        return PositionAggregateRecord(
            instrument_id=int(row["instrument_id"]),
            total_shares=Decimal(row["total_shares"]),
            total_invested=Decimal(row["total_invested"]),
            average_cost=Decimal(row["average_cost"]),
            realized_profit=Decimal(row["realized_profit"]),
            updated_at_utc=row["updated_at_utc"],
        )

    def _db_ledger_build_namespace_key(self, namespace: str) -> int:
        """Derive a deterministic signed int32 advisory lock namespace key."""

        digest = hashlib.sha256(namespace.encode("utf-8")).digest()
        return int.from_bytes(digest[0:4], byteorder="big", signed=True)

    def _db_ledger_escape_like(self, value: str) -> str:
        """Escape LIKE wildcards so user text matches literally."""

        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    def _db_ledger_validate_non_empty_text(self, value: str, field_name: str) -> str:
        """Validate required text and normalize surrounding whitespace.

        Args:
            value: Candidate text value.
            field_name: Field name for deterministic error text.

        Returns:
            str: Normalized text value.

        Raises:
            ValueError: Raised when value is invalid.
        """

        if not isinstance(value, str):
            raise ValueError(f"{field_name} must be a string")

        normalized_value = value.strip()
        if not normalized_value:
            raise ValueError(f"{field_name} must not be blank")

        return normalized_value

    def _db_ledger_validate_positive_int(self, value: int, field_name: str) -> int:
        """Validate a positive integer identifier."""

        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{field_name} must be an integer")
        if value < 1:
            raise ValueError(f"{field_name} must be >= 1")
        return value


__all__ = ["SQLAlchemyLedgerRepository"]
