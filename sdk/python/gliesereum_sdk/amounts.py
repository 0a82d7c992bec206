"""Decimal amount helpers.

Smart transaction amounts and fees are decimal strings with six fractional
digits; on-chain balances are integers in base units with eight decimals.
All arithmetic goes through :class:`decimal.Decimal` so no float rounding
reaches the wire.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from gliesereum_sdk.exceptions import InvalidAmountError
from gliesereum_sdk.params import PROTOCOL


def _to_decimal(value: str | int | Decimal, field: str) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(f"{field} must be a string, int or Decimal", field=field, constraint="exact decimal")
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError) as exc:
        raise InvalidAmountError(f"{field} is not a decimal number: {value!r}", field=field, constraint="decimal") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"{field} must be finite", field=field, constraint="finite")
    if amount < 0:
        raise InvalidAmountError(f"{field} must not be negative", field=field, constraint=">= 0")
    return amount


def format_amount(value: str | int | Decimal, decimals: int = PROTOCOL.smart_decimals) -> str:
    """Render *value* with exactly *decimals* fractional digits.

    Extra fractional digits are truncated, never rounded up.

    >>> format_amount("50")
    '50.000000'
    >>> format_amount("0.1234567")
    '0.123456'
    """
    amount = _to_decimal(value, "amount")
    quantum = Decimal(1).scaleb(-decimals)
    return f"{amount.quantize(quantum, rounding=ROUND_DOWN):f}"


def to_raw_balance(amount: str | int | Decimal, decimals: int = PROTOCOL.balance_decimals) -> int:
    """Convert a human-readable amount to integer base units (truncating)."""
    scaled = _to_decimal(amount, "amount").scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_raw_balance(raw: str | int, decimals: int = PROTOCOL.balance_decimals) -> str:
    """Convert integer base units to a fixed-point string with *decimals* digits."""
    units = _to_decimal(raw, "raw")
    if units != units.to_integral_value():
        raise InvalidAmountError("raw balance must be an integer", field="raw", constraint="integer")
    return format_amount(units.scaleb(-decimals), decimals)
