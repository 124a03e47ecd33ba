"""
Money normalization shared by every request builder and validator.

A money value is a number or numeric string that is finite and >= 0; it is
rounded half-up to exactly two decimals. Anything else is rejected, never
coerced to zero.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from domain.common.exceptions import InvalidMoney


CENT = Decimal("0.01")


def normalize_money(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidMoney(f"not a money value: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidMoney("empty money string")
    if isinstance(value, float):
        # repr() keeps the shortest round-tripping form (0.1 -> "0.1")
        value = repr(value)
    if not isinstance(value, (int, str, Decimal)):
        raise InvalidMoney(f"not a money value: {value!r}")
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidMoney(f"not a money value: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise InvalidMoney(f"money must be finite and non-negative: {value!r}")
    if amount == 0:
        amount = Decimal(0)
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidMoney(f"money out of range: {value!r}") from exc


def try_money(value: Any) -> Optional[Decimal]:
    try:
        return normalize_money(value)
    except InvalidMoney:
        return None


def money_to_json(amount: Decimal) -> float:
    """Gateway bodies carry money as JSON numbers in whole currency units."""
    return float(amount)
