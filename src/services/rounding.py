"""Rounding correction for floored allocations.

Guarantees: sum(corrected amounts) == total, to the cent.
"""

from decimal import Decimal

from src.services.money import CENT, quantize_cent
from src.services.utility_types import UtilityAllocationResult


def apply_rounding_correction(
    allocations: list[UtilityAllocationResult],
    total_amount: Decimal,
) -> list[UtilityAllocationResult]:
    """Push the leftover cents onto the last allocation.

    The list keeps its order (the unit order from hydration), so the same
    input always yields the same corrected output.

    Args:
        allocations: Per-unit amounts already floored to the cent
        total_amount: Bill total the amounts must add up to

    Returns:
        New list with the last amount adjusted, or the input unchanged when it
        already balances
    """
    if not allocations:
        return allocations

    current_sum = sum((a.amount for a in allocations), Decimal("0.00"))
    diff = quantize_cent(total_amount - current_sum)

    if abs(diff) < CENT:
        return allocations

    corrected = list(allocations)
    last = corrected[-1]
    corrected[-1] = last._replace(amount=quantize_cent(last.amount + diff))
    return corrected


__all__ = ["apply_rounding_correction"]
