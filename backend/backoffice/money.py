"""Integer-cents helpers. All monetary values in this package are int cents."""

from __future__ import annotations


def format_cents(cents: int, symbol: str = "₹") -> str:
    """1234567 -> '₹12,345.67'"""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{symbol}{whole:,}.{frac:02d}"
