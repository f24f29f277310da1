from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal("0.01")


def format_units(value: int, decimals: int) -> str:
    """Render an integer token amount as a decimal string.

    Args:
        value: Raw on-chain amount.
        decimals: Number of decimal places the token uses.

    Returns:
        The amount with trailing fractional zeros removed but at least one
        fractional digit kept, e.g. ``format_units(1_500_000, 6) == "1.5"``
        and ``format_units(10**6, 6) == "1.0"``.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10**decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_str}"


def format_usd(value: Decimal | str | float) -> str:
    """Format a USD amount with exactly two decimal places (half-up)."""
    return str(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))


def parse_usd(value: str) -> Decimal | None:
    """Parse a USD string, returning None when it is not a finite number."""
    try:
        parsed = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed
