"""Conversions between Decimal amounts and the integer cents stored in the database"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """Decimal amount to integer cents (amounts are validated to 2 decimals beforehand)"""
    return int((Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def from_cents(cents: int) -> Decimal:
    """Integer cents back to a 2-decimal amount"""
    return (Decimal(int(cents)) / 100).quantize(CENT)


def percentage(part_cents: int, whole_cents: int) -> Decimal:
    """part / whole * 100, rounded to 2 decimals; 0 for an empty whole"""
    if whole_cents == 0:
        return Decimal("0.00")
    return (Decimal(part_cents) * 100 / Decimal(whole_cents)).quantize(CENT, rounding=ROUND_HALF_UP)
