"""Validation guards for utility bills, allocations and meter readings.

Input schemas validate request payloads; the guard functions enforce the bill
lifecycle and the financial invariants. Nothing here touches the database.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.utility_bill import UtilityBillStatus, UtilityImportMethod, UtilitySplitMethod
from src.services.bill_state_machine import can_transition, is_immutable
from src.services.money import quantize_cent
from src.services.utility_types import (
    AllocateError,
    ReadingError,
    TransitionError,
    UtilityAllocationResult,
)

RATIO_TOLERANCE = Decimal("0.0001")


# ============================================================================
# Input schemas
# ============================================================================


class CreateUtilityBillInput(BaseModel):
    """Payload for creating a utility bill in DRAFT."""

    property_id: int = Field(..., gt=0, description="Property the bill belongs to")
    provider_name: str = Field(..., min_length=1, max_length=200)
    total_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    bill_date: date
    due_date: date
    split_method: UtilitySplitMethod
    import_method: UtilityImportMethod = UtilityImportMethod.MANUAL_ENTRY
    utility_type: str | None = Field(None, max_length=50)
    period_start: date | None = None
    period_end: date | None = None
    file_url: str | None = Field(None, max_length=500)
    ocr_confidence: float | None = Field(None, ge=0, le=1)

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="after")
    def check_dates(self) -> "CreateUtilityBillInput":
        if self.due_date < self.bill_date:
            raise ValueError("Due date must be on or after bill date")
        if self.period_start and self.period_end and self.period_end < self.period_start:
            raise ValueError("Billing period must end on or after it starts")
        return self


class CreateUtilityReadingInput(BaseModel):
    """Payload for recording a meter reading."""

    lease_utility_id: int = Field(..., gt=0)
    reading_value: Decimal = Field(..., ge=0, description="Cumulative meter value")
    reading_date: datetime | None = None


# ============================================================================
# Lifecycle guards
# ============================================================================


def can_allocate_bill(status: UtilityBillStatus) -> AllocateError | None:
    """Return the refusal reason, or None when allocation may proceed."""
    if is_immutable(status) or status != UtilityBillStatus.DRAFT:
        return AllocateError.INVALID_STATUS
    return None


def can_approve_bill(
    status: UtilityBillStatus,
    total_amount: Decimal,
    allocations: list[UtilityAllocationResult],
) -> TransitionError | None:
    """Approval needs a PROCESSING/REVIEW_REQUIRED bill with balanced allocations."""
    if is_immutable(status):
        return TransitionError.BILL_ALREADY_POSTED
    if not can_transition(status, UtilityBillStatus.APPROVED):
        return TransitionError.INVALID_STATUS
    if not allocations:
        return TransitionError.NO_ALLOCATIONS
    if not validate_allocation_sum(allocations, total_amount):
        return TransitionError.ALLOCATION_SUM_MISMATCH
    return None


# ============================================================================
# Allocation integrity
# ============================================================================


def allocation_sum_difference(
    allocations: Iterable[UtilityAllocationResult],
    total_amount: Decimal,
) -> Decimal:
    """Bill total minus the allocated sum, in exact cents."""
    allocated = sum((quantize_cent(a.amount) for a in allocations), Decimal("0.00"))
    return quantize_cent(total_amount) - allocated


def validate_allocation_sum(
    allocations: Iterable[UtilityAllocationResult],
    total_amount: Decimal,
) -> bool:
    """Every cent must be accounted for: sum(amounts) == total, exactly."""
    return allocation_sum_difference(allocations, total_amount) == 0


def validate_ratio_sum(ratios: Iterable[Decimal]) -> bool:
    """Ratios must sum to 1.0 within ``RATIO_TOLERANCE``."""
    total = sum((Decimal(str(r)) for r in ratios), Decimal(0))
    return abs(total - 1) <= RATIO_TOLERANCE


def validate_custom_ratio(ratio: Decimal) -> bool:
    return Decimal(0) <= Decimal(str(ratio)) <= Decimal(1)


def validate_percentage_sum(allocations: list[UtilityAllocationResult]) -> bool:
    """Derived percentages should land on 100 within rounding tolerance.

    Each percentage is rounded to 0.01, so the sum may drift by half a
    hundredth per allocation.
    """
    total = sum((a.percentage for a in allocations), Decimal(0))
    tolerance = max(Decimal("0.005") * len(allocations), Decimal("0.01"))
    return abs(total - 100) <= tolerance


# ============================================================================
# Reading rules
# ============================================================================


def validate_new_reading(
    value: Decimal,
    previous_value: Decimal | None,
    next_value: Decimal | None = None,
) -> ReadingError | None:
    """Meters are monotonic in date order.

    A reading must be non-negative, not below the reading dated before it and,
    when it is backdated, not above the reading dated after it.
    """
    if value < 0:
        return ReadingError.NEGATIVE_VALUE
    if previous_value is not None and value < previous_value:
        return ReadingError.DECREASING_VALUE
    if next_value is not None and value > next_value:
        return ReadingError.DECREASING_VALUE
    return None


__all__ = [
    "CreateUtilityBillInput",
    "CreateUtilityReadingInput",
    "RATIO_TOLERANCE",
    "allocation_sum_difference",
    "can_allocate_bill",
    "can_approve_bill",
    "validate_allocation_sum",
    "validate_custom_ratio",
    "validate_new_reading",
    "validate_percentage_sum",
    "validate_ratio_sum",
]
