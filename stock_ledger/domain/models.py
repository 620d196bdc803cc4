"""Typed domain models shared across runtime layers.

This module provides simple data contracts for cross-layer communication.
"""

from dataclasses import dataclass

TRANSACTION_KIND_BUY = "BUY"
TRANSACTION_KIND_SELL = "SELL"
TRANSACTION_KIND_INCOME = "INCOME"

TRANSACTION_KINDS = (TRANSACTION_KIND_BUY, TRANSACTION_KIND_SELL, TRANSACTION_KIND_INCOME)

_TRANSACTION_KIND_ALIASES = {
    "DIVIDEND": TRANSACTION_KIND_INCOME,
}


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


def domain_normalize_transaction_kind(kind: str) -> str:
    """Normalize transaction kind text to one supported kind.

    Args:
        kind: Candidate kind text, case-insensitive. `DIVIDEND` maps to `INCOME`.

    Returns:
        str: One of `BUY`, `SELL`, `INCOME`.

    Raises:
        ValueError: Raised when kind is blank or unsupported.
    """

    if not isinstance(kind, str) or not kind.strip():
        raise ValueError("kind must be a non-empty string")

    normalized_kind = kind.strip().upper()
    normalized_kind = _TRANSACTION_KIND_ALIASES.get(normalized_kind, normalized_kind)
    if normalized_kind not in TRANSACTION_KINDS:
        raise ValueError(f"unsupported transaction kind={kind}")
    return normalized_kind


def domain_kind_requires_quantity(kind: str) -> bool:
    """Return whether a normalized transaction kind moves shares."""

    return kind in (TRANSACTION_KIND_BUY, TRANSACTION_KIND_SELL)
