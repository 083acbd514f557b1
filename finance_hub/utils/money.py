"""Conversions between decimal amounts and stored integer cents"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")


def to_cents(amount: Union[Decimal, int, float, str]) -> int:
    """Decimal amount to integer cents, rounding half up"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: Optional[int]) -> Decimal:
    """Integer cents (None for empty aggregates) to a 2-place Decimal"""
    if cents is None:
        return Decimal("0.00")
    return (Decimal(int(cents)) / 100).quantize(CENT)


def ratio(numerator: Decimal, denominator: Decimal) -> float:
    """numerator / denominator as float, 0.0 when the denominator is zero"""
    if denominator == 0:
        return 0.0
    return float(numerator / denominator)
