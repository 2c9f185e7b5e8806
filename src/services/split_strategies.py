"""Pure allocation strategies for splitting a utility bill across units.

Each strategy takes the hydrated unit contexts and the bill total and returns
one ``UtilityAllocationResult`` per context, in context order, or ``None`` when
the data it depends on is missing. Amounts are floored to the cent; the
rounding correction settles the leftover cents afterwards.

Business rules:
- A unit with an ACTIVE lease but no occupants makes an occupancy split fail
  as missing data; it is never silently excluded.
- Percentages are derived for display and audit only.
"""

from decimal import Decimal
from typing import Callable

from src.models.utility_bill import UtilitySplitMethod
from src.services.money import (
    HUNDRED,
    floor_share_cents,
    from_cents,
    quantize_percent,
    to_cents,
)
from src.services.utility_types import UtilityAllocationResult, UtilitySplitContext
from src.services.utility_validators import validate_custom_ratio, validate_ratio_sum

SplitStrategy = Callable[
    [list[UtilitySplitContext], Decimal], "list[UtilityAllocationResult] | None"
]


def allocate_equal(
    contexts: list[UtilitySplitContext],
    total_amount: Decimal,
) -> list[UtilityAllocationResult]:
    """Give every unit the same floored share."""
    count = len(contexts)
    if count == 0:
        return []

    base_amount = from_cents(to_cents(total_amount) // count)
    percentage = quantize_percent(HUNDRED / count)

    return [
        UtilityAllocationResult(unit_id=ctx.unit_id, amount=base_amount, percentage=percentage)
        for ctx in contexts
    ]


def _allocate_by_weight(
    contexts: list[UtilitySplitContext],
    weights: list[Decimal],
    total_amount: Decimal,
) -> list[UtilityAllocationResult] | None:
    if any(weight < 0 for weight in weights):
        return None

    total_weight = sum(weights, Decimal(0))
    if total_weight == 0:
        return None

    total_cents = to_cents(total_amount)
    return [
        UtilityAllocationResult(
            unit_id=ctx.unit_id,
            amount=from_cents(floor_share_cents(weight, total_weight, total_cents)),
            percentage=quantize_percent(weight * HUNDRED / total_weight),
        )
        for ctx, weight in zip(contexts, weights)
    ]


def allocate_by_sq_footage(
    contexts: list[UtilitySplitContext],
    total_amount: Decimal,
) -> list[UtilityAllocationResult] | None:
    """Split in proportion to floor area; units without a size weigh zero."""
    weights = [Decimal(str(ctx.sq_footage or 0)) for ctx in contexts]
    return _allocate_by_weight(contexts, weights, total_amount)


def allocate_by_occupancy(
    contexts: list[UtilitySplitContext],
    total_amount: Decimal,
) -> list[UtilityAllocationResult] | None:
    """Split in proportion to occupants; vacant units (no lease) weigh zero."""
    for ctx in contexts:
        if ctx.lease_id is not None and not ctx.occupant_count:
            return None

    weights = [Decimal(str(ctx.occupant_count or 0)) for ctx in contexts]
    return _allocate_by_weight(contexts, weights, total_amount)


def allocate_sub_metered(
    contexts: list[UtilitySplitContext],
    total_amount: Decimal,
) -> list[UtilityAllocationResult] | None:
    """Split in proportion to metered usage.

    ``usage_delta`` must already be latest minus previous reading.
    """
    weights = [Decimal(str(ctx.usage_delta or 0)) for ctx in contexts]
    return _allocate_by_weight(contexts, weights, total_amount)


def allocate_custom_ratio(
    contexts: list[UtilitySplitContext],
    total_amount: Decimal,
) -> list[UtilityAllocationResult] | None:
    """Split by explicit per-unit ratios that must sum to 1.0."""
    ratios = [Decimal(str(ctx.custom_ratio or 0)) for ctx in contexts]
    if not all(validate_custom_ratio(ratio) for ratio in ratios):
        return None
    if not validate_ratio_sum(ratios):
        return None

    total_cents = to_cents(total_amount)
    return [
        UtilityAllocationResult(
            unit_id=ctx.unit_id,
            amount=from_cents(floor_share_cents(ratio, Decimal(1), total_cents)),
            percentage=quantize_percent(ratio * HUNDRED),
        )
        for ctx, ratio in zip(contexts, ratios)
    ]


# Split method -> strategy. AI_OPTIMIZED has no strategy.
SPLIT_STRATEGIES: dict[UtilitySplitMethod, SplitStrategy] = {
    UtilitySplitMethod.EQUAL: allocate_equal,
    UtilitySplitMethod.SQ_FOOTAGE: allocate_by_sq_footage,
    UtilitySplitMethod.OCCUPANCY_BASED: allocate_by_occupancy,
    UtilitySplitMethod.SUB_METERED: allocate_sub_metered,
    UtilitySplitMethod.CUSTOM_RATIO: allocate_custom_ratio,
}


def get_strategy(split_method: UtilitySplitMethod) -> SplitStrategy | None:
    return SPLIT_STRATEGIES.get(split_method)


__all__ = [
    "SPLIT_STRATEGIES",
    "SplitStrategy",
    "allocate_by_occupancy",
    "allocate_by_sq_footage",
    "allocate_custom_ratio",
    "allocate_equal",
    "allocate_sub_metered",
    "get_strategy",
]
