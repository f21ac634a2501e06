# Overview: Conversions between JSON decimal amounts and stored integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def to_cents(value) -> int:
    """
    Convert a JSON amount (int, float or numeric string) to integer cents.

    Rounds half-up to the nearest cent. Raises ValueError for booleans,
    non-numeric input, NaN and infinities.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a finite number")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int | None) -> float | None:
    """Decimal amount for display; two decimal places at most."""
    if cents is None:
        return None
    return float(Decimal(cents) / 100)
