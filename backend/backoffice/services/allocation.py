"""
Payment-state arithmetic for bills.

Pure functions over integer cents, independent of persistence, so the
status rules and the FIFO water-filling allocation can be exercised directly.
"""

from __future__ import annotations

from typing import Sequence

from ..errors import InvalidInputError, LimitExceededError
from ..models.billing import BILL_PAID, BILL_PARTIAL, BILL_PENDING
from ..money import format_cents


def payment_status(received_cents: int, total_cents: int) -> str:
    """
    paid    iff received >= total
    partial iff 0 < received < total
    pending otherwise
    """
    if received_cents >= total_cents:
        return BILL_PAID
    if received_cents > 0:
        return BILL_PARTIAL
    return BILL_PENDING


def due_amount(received_cents: int, total_cents: int) -> int:
    return max(0, total_cents - received_cents)


def allocate_fifo(dues: Sequence[int], amount_cents: int) -> list[int]:
    """
    Water-fill `amount_cents` over `dues` (oldest first).

    Each due is fully satisfied before the next one receives anything.
    Returns the amount applied to each due, aligned with the input.

    >>> allocate_fifo([100, 50, 200], 120)
    [100, 20, 0]
    """
    if amount_cents <= 0:
        raise InvalidInputError("Valid payment amount is required", details={"amount_cents": amount_cents})
    if any(d < 0 for d in dues):
        raise InvalidInputError("Dues cannot be negative")

    total_due = sum(dues)
    if amount_cents > total_due:
        raise LimitExceededError(
            f"Amount ({format_cents(amount_cents)}) cannot exceed total due ({format_cents(total_due)})",
            details={"amount_cents": amount_cents, "total_due_cents": total_due},
        )

    remaining = amount_cents
    applied = []
    for due in dues:
        share = min(due, remaining)
        applied.append(share)
        remaining -= share
    return applied
