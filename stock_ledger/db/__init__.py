"""Database layer package for all SQL and persistence boundaries."""

from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
    TRANSACTION_MUTATION_DELETE,
    TRANSACTION_MUTATION_INSERT,
    TRANSACTION_MUTATION_UPDATE,
    TRANSACTION_MUTATIONS,
    DatabaseHealthPort,
    InstrumentAlreadyExistsError,
    InstrumentHoldingRecord,
    InstrumentNotFoundError,
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
from .ledger_repository import SQLAlchemyLedgerRepository
from .session import db_create_engine

__all__ = [
    "TRANSACTION_MUTATION_DELETE",
    "TRANSACTION_MUTATION_INSERT",
    "TRANSACTION_MUTATION_UPDATE",
    "TRANSACTION_MUTATIONS",
    "DatabaseHealthPort",
    "InstrumentAlreadyExistsError",
    "InstrumentHoldingRecord",
    "InstrumentNotFoundError",
    "InstrumentRecord",
    "InstrumentTransactionRecord",
    "LedgerRepositoryPort",
    "LedgerTransactionMutation",
    "LedgerTransactionRecord",
    "LedgerTransactionWriteRequest",
    "PositionAggregateComputeFn",
    "PositionAggregateRecord",
    "PositionAggregateWriteRequest",
    "SQLAlchemyDatabaseHealthService",
    "SQLAlchemyLedgerRepository",
    "TransactionNotFoundError",
    "db_create_engine",
]
