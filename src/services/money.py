"""Fixed-point money helpers.

All allocation math runs on integer cents; values cross back into ``Decimal``
with exactly two places. No float is used for money.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def quantize_cent(value: Decimal | str | int) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_percent(value: Decimal) -> Decimal:
    """Round a percentage to two places for display and audit."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal | str | int) -> int:
    """Convert a money amount to integer cents (half-up on sub-cent input)."""
    return int(quantize_cent(amount) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def floor_share_cents(weight: Decimal, total_weight: Decimal, total_cents: int) -> int:
    """Floor of ``weight / total_weight * total_cents``.

    Multiplication happens before division so exact splits stay exact.
    """
    return int((weight * total_cents / total_weight).to_integral_value(rounding=ROUND_FLOOR))


def is_valid_amount(amount: Decimal | None) -> bool:
    """True for a finite, strictly positive amount."""
    if amount is None:
        return False
    amount = Decimal(str(amount))
    return amount.is_finite() and amount > 0


__all__ = [
    "CENT",
    "HUNDRED",
    "ZERO",
    "floor_share_cents",
    "from_cents",
    "is_valid_amount",
    "quantize_cent",
    "quantize_percent",
    "to_cents",
]
