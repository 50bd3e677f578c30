"""
Money arithmetic.

Amounts are plain floats, matching the stored data. Every balance change
in the ledger goes through these helpers so the representation can be
swapped for fixed-point later without touching call sites.
"""

import math
from typing import Iterable

# Comparison tolerance for float currency values.
TOLERANCE = 1e-6


def credit(balance: float, amount: float) -> float:
    """Money coming into an account."""
    return balance + amount


def debit(balance: float, amount: float) -> float:
    """Money leaving an account."""
    return balance - amount


def total(amounts: Iterable[float]) -> float:
    return sum(amounts, 0.0)


def split(amount: float, count: int) -> float:
    """
    Per-installment value of a total split over `count` installments.

    Plain division. Last-cent drift across installments is accepted.
    """
    if count < 1:
        raise ValueError(f"Cannot split an amount into {count} parts")
    return amount / count


def is_close(a: float, b: float, tolerance: float = TOLERANCE) -> bool:
    return math.isclose(a, b, abs_tol=tolerance)
