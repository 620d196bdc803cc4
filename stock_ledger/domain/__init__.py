"""Domain models used across application layer boundaries."""

from .decimals import (
    CURRENCY_INTEGER_DIGITS,
    CURRENCY_QUANTUM,
    DECIMAL_ZERO,
    SHARE_INTEGER_DIGITS,
    SHARE_QUANTUM,
    domain_decimal_parse,
    domain_decimal_parse_optional,
    domain_decimal_quantize_currency,
    domain_decimal_quantize_shares,
    domain_decimal_to_text,
)
from .models import (
    TRANSACTION_KIND_BUY,
    TRANSACTION_KIND_INCOME,
    TRANSACTION_KIND_SELL,
    TRANSACTION_KINDS,
    HealthStatus,
    domain_kind_requires_quantity,
    domain_normalize_transaction_kind,
)

__all__ = [
    "CURRENCY_INTEGER_DIGITS",
    "CURRENCY_QUANTUM",
    "DECIMAL_ZERO",
    "SHARE_INTEGER_DIGITS",
    "SHARE_QUANTUM",
    "TRANSACTION_KIND_BUY",
    "TRANSACTION_KIND_INCOME",
    "TRANSACTION_KIND_SELL",
    "TRANSACTION_KINDS",
    "HealthStatus",
    "domain_decimal_parse",
    "domain_decimal_parse_optional",
    "domain_decimal_quantize_currency",
    "domain_decimal_quantize_shares",
    "domain_decimal_to_text",
    "domain_kind_requires_quantity",
    "domain_normalize_transaction_kind",
]
