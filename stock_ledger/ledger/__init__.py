"""Ledger layer package for moving-average replay and aggregate maintenance."""

from .instrument_locks import InstrumentLockRegistry
from .interfaces import LedgerRecomputePort, RecomputeAllResult, RecomputeError
from .recompute_service import PositionAggregateRecomputeService
from .replay_engine import (
    ReplayState,
    ReplayStep,
    ReplayTransactionInput,
    replay_apply_transaction,
    replay_fold_transactions,
    replay_input_from_record,
    replay_iterate_transactions,
    replay_sort_transactions,
    replay_validate_transaction,
)
from .transaction_service import (
    AUDIT_GROUP_MODES,
    InstrumentPosition,
    LedgerTransactionService,
    TransactionAuditGroup,
    TransactionFields,
    TransactionMutationResult,
    ledger_build_transaction_request,
    ledger_group_audit_rows,
)

__all__ = [
    "AUDIT_GROUP_MODES",
    "InstrumentLockRegistry",
    "InstrumentPosition",
    "LedgerRecomputePort",
    "LedgerTransactionService",
    "PositionAggregateRecomputeService",
    "RecomputeAllResult",
    "RecomputeError",
    "ReplayState",
    "ReplayStep",
    "ReplayTransactionInput",
    "TransactionAuditGroup",
    "TransactionFields",
    "TransactionMutationResult",
    "ledger_build_transaction_request",
    "ledger_group_audit_rows",
    "replay_apply_transaction",
    "replay_fold_transactions",
    "replay_input_from_record",
    "replay_iterate_transactions",
    "replay_sort_transactions",
    "replay_validate_transaction",
]
