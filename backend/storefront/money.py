from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


def cents_to_decimal(cents: Optional[int]) -> Optional[Decimal]:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: Optional[int]) -> Optional[str]:
    """Serializes an amount in cents as a fixed two-decimal string ("12.50")."""
    value = cents_to_decimal(cents)
    return None if value is None else str(value)


def parse_amount_to_cents(value: Any) -> int:
    """
    Parse a decimal amount ("12.5", 12.5, 12) into integer cents.

    Floats go through str() so 19.99 stays 1999 instead of 1998.
    Half-up rounding beyond the second decimal. Raises ValueError on garbage.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a number")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
