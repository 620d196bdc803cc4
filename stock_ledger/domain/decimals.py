"""Decimal parsing and persisted-scale helpers for currency and share values.

Currency values persist as NUMERIC(18,2) and share/price values as NUMERIC(18,8),
so each scale also bounds the integer digits a value may carry.
Replay arithmetic runs at full context precision; quantization only happens
at the persistence boundary.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

DECIMAL_ZERO = Decimal("0")

CURRENCY_QUANTUM = Decimal("0.01")
SHARE_QUANTUM = Decimal("0.00000001")
CURRENCY_INTEGER_DIGITS = 16
SHARE_INTEGER_DIGITS = 10


def domain_decimal_parse(value: object, field_name: str) -> Decimal:
    """Parse one decimal input without passing through binary floating point.

    Args:
        value: Decimal, int, or numeric string value.
        field_name: Field name for deterministic error text.

    Returns:
        Decimal: Parsed finite decimal value.

    Raises:
        ValueError: Raised when value is a float, blank, non-numeric, or non-finite.
    """

    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{field_name} must be a decimal string, int, or Decimal, not {type(value).__name__}")

    if isinstance(value, Decimal):
        parsed_value = value
    elif isinstance(value, int):
        parsed_value = Decimal(value)
    elif isinstance(value, str):
        normalized_value = value.strip().replace(",", "")
        if not normalized_value:
            raise ValueError(f"{field_name} must not be blank")
        try:
            parsed_value = Decimal(normalized_value)
        except InvalidOperation as error:
            raise ValueError(f"{field_name} must be a valid decimal value: {value}") from error
    else:
        raise ValueError(f"{field_name} must be a decimal string, int, or Decimal")

    if not parsed_value.is_finite():
        raise ValueError(f"{field_name} must be finite")
    return parsed_value


def domain_decimal_parse_optional(value: object | None, field_name: str) -> Decimal | None:
    """Parse one optional decimal input; None and blank text map to None."""

    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return domain_decimal_parse(value, field_name)


def domain_decimal_quantize_currency(value: Decimal, field_name: str = "amount") -> Decimal:
    """Quantize a currency amount to the persisted NUMERIC(18,2) column.

    Raises:
        ValueError: Raised when the value needs more than 16 integer digits.
    """

    return _domain_decimal_quantize(value, CURRENCY_QUANTUM, CURRENCY_INTEGER_DIGITS, field_name)


def domain_decimal_quantize_shares(value: Decimal, field_name: str = "quantity") -> Decimal:
    """Quantize a share quantity or per-share price to the persisted NUMERIC(18,8) column.

    Raises:
        ValueError: Raised when the value needs more than 10 integer digits.
    """

    return _domain_decimal_quantize(value, SHARE_QUANTUM, SHARE_INTEGER_DIGITS, field_name)


def domain_decimal_to_text(value: Decimal | None) -> str | None:
    """Render a decimal for JSON payloads without exponent notation."""

    if value is None:
        return None
    return format(value, "f")


def _domain_decimal_quantize(value: Decimal, quantum: Decimal, integer_digits: int, field_name: str) -> Decimal:
    upper_bound = Decimal(10) ** integer_digits
    if abs(value) >= upper_bound:
        raise ValueError(f"{field_name} exceeds {integer_digits} integer digits: {value}")

    try:
        quantized_value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation as error:
        raise ValueError(f"{field_name} cannot be stored at scale {-quantum.as_tuple().exponent}: {value}") from error

    # Rounding up can carry into one more integer digit.
    if abs(quantized_value) >= upper_bound:
        raise ValueError(f"{field_name} exceeds {integer_digits} integer digits: {value}")
    # Collapse -0.00 so zero positions compare and render as plain zero.
    if quantized_value.is_zero():
        return DECIMAL_ZERO.quantize(quantum)
    return quantized_value


__all__ = [
    "CURRENCY_INTEGER_DIGITS",
    "CURRENCY_QUANTUM",
    "DECIMAL_ZERO",
    "SHARE_INTEGER_DIGITS",
    "SHARE_QUANTUM",
    "domain_decimal_parse",
    "domain_decimal_parse_optional",
    "domain_decimal_quantize_currency",
    "domain_decimal_quantize_shares",
    "domain_decimal_to_text",
]
