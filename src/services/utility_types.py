"""Shared type contracts for the utility billing services.

Strategies, the context builder and the services exchange these immutable
records; failures travel as ``ServiceResult`` values carrying a closed error
enum rather than as exceptions.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Generic, NamedTuple, TypeVar

from src.models.utility_bill import UtilityBillStatus, UtilitySplitMethod

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


class UtilitySplitContext(NamedTuple):
    """Hydrated facts about one unit for a single allocation run.

    Only the fields the chosen split method needs are populated; the rest
    stay None.
    """

    unit_id: int
    lease_id: int | None = None
    sq_footage: Decimal | None = None
    occupant_count: int | None = None
    usage_delta: Decimal | None = None
    custom_ratio: Decimal | None = None
    """Decimal between 0.0 and 1.0. All unit ratios must sum to 1.0."""


class UtilityAllocationResult(NamedTuple):
    """A unit's computed share of a bill."""

    unit_id: int
    amount: Decimal
    percentage: Decimal


class AllocateBillData(NamedTuple):
    """Payload of a successful allocation."""

    allocations: list[UtilityAllocationResult]
    status: UtilityBillStatus


class AllocateError(str, Enum):
    """Reasons an allocation can be refused."""

    BILL_NOT_FOUND = "BILL_NOT_FOUND"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    NO_UNITS_FOUND = "NO_UNITS_FOUND"
    MISSING_SPLIT_DATA = "MISSING_SPLIT_DATA"
    SUM_MISMATCH = "SUM_MISMATCH"
    ALREADY_ALLOCATED = "ALREADY_ALLOCATED"


class CreateBillError(str, Enum):
    """Reasons bill creation can be refused."""

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_PROPERTY = "INVALID_PROPERTY"
    INVALID_DATES = "INVALID_DATES"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    PROPERTY_NOT_FOUND = "PROPERTY_NOT_FOUND"


class ReadingError(str, Enum):
    """Reasons a meter reading can be refused."""

    INVALID_INPUT = "INVALID_INPUT"
    LEASE_UTILITY_NOT_FOUND = "LEASE_UTILITY_NOT_FOUND"
    LEASE_NOT_ACTIVE = "LEASE_NOT_ACTIVE"
    UTILITY_NOT_TENANT_RESPONSIBLE = "UTILITY_NOT_TENANT_RESPONSIBLE"
    NEGATIVE_VALUE = "NEGATIVE_VALUE"
    DECREASING_VALUE = "DECREASING_VALUE"


class TransitionError(str, Enum):
    """Reasons a bill status transition can be refused."""

    BILL_NOT_FOUND = "BILL_NOT_FOUND"
    INVALID_STATUS = "INVALID_STATUS"
    BILL_ALREADY_POSTED = "BILL_ALREADY_POSTED"
    NO_ALLOCATIONS = "NO_ALLOCATIONS"
    ALLOCATION_SUM_MISMATCH = "ALLOCATION_SUM_MISMATCH"


@dataclass(frozen=True)
class ServiceResult(Generic[T, E]):
    """Typed success/failure value returned by the utility services.

    Callers check ``success`` before reading ``data``.
    """

    success: bool
    data: T | None = None
    error: E | None = None
    message: str | None = None

    @classmethod
    def ok(cls, data: T) -> "ServiceResult[T, E]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: E, message: str | None = None) -> "ServiceResult[T, E]":
        return cls(success=False, error=error, message=message or default_message(error))


# Keyed by enum class first: the str-valued kinds overlap across enums
# (BILL_NOT_FOUND, INVALID_STATUS, ...) and compare equal as plain strings.
_DEFAULT_MESSAGES: dict[type[Enum], dict[Enum, str]] = {
    AllocateError: {
        AllocateError.BILL_NOT_FOUND: "Utility bill not found",
        AllocateError.INVALID_STATUS: "Only DRAFT bills can be allocated",
        AllocateError.INVALID_AMOUNT: "Bill total must be a positive, finite amount",
        AllocateError.NO_UNITS_FOUND: "The bill's property has no units to allocate to",
        AllocateError.MISSING_SPLIT_DATA: "Required split data is missing for this bill",
        AllocateError.SUM_MISMATCH: "Allocations do not add up to the bill total",
        AllocateError.ALREADY_ALLOCATED: "This bill has already been allocated",
    },
    CreateBillError: {
        CreateBillError.INVALID_INPUT: "Bill input is invalid",
        CreateBillError.INVALID_PROPERTY: "A property is required",
        CreateBillError.INVALID_DATES: "Due date must be on or after bill date",
        CreateBillError.INVALID_AMOUNT: "Bill amount must be positive",
        CreateBillError.PROPERTY_NOT_FOUND: "Property not found",
    },
    ReadingError: {
        ReadingError.INVALID_INPUT: "Reading input is invalid",
        ReadingError.LEASE_UTILITY_NOT_FOUND: "Lease utility not found",
        ReadingError.LEASE_NOT_ACTIVE: "Readings can only be recorded against an active lease",
        ReadingError.UTILITY_NOT_TENANT_RESPONSIBLE: (
            "This utility is not the tenant's responsibility"
        ),
        ReadingError.NEGATIVE_VALUE: "Reading value cannot be negative",
        ReadingError.DECREASING_VALUE: "Reading value cannot be lower than the previous reading",
    },
    TransitionError: {
        TransitionError.BILL_NOT_FOUND: "Utility bill not found",
        TransitionError.INVALID_STATUS: "Bill status does not allow this action",
        TransitionError.BILL_ALREADY_POSTED: (
            "Bill is posted to financials and can no longer change"
        ),
        TransitionError.NO_ALLOCATIONS: "Bill has no allocations",
        TransitionError.ALLOCATION_SUM_MISMATCH: "Allocations do not add up to the bill total",
    },
}

# Actionable hints for MISSING_SPLIT_DATA, keyed by the bill's split method
MISSING_SPLIT_DATA_HINTS: dict[UtilitySplitMethod, str] = {
    UtilitySplitMethod.SQ_FOOTAGE: "Add square footage to the units before allocating by area",
    UtilitySplitMethod.OCCUPANCY_BASED: (
        "Add occupant counts to every active lease before allocating by occupancy"
    ),
    UtilitySplitMethod.SUB_METERED: (
        "Every leased unit needs at least two non-decreasing meter readings "
        "before allocating by usage"
    ),
    UtilitySplitMethod.CUSTOM_RATIO: (
        "Custom ratio allocation requires explicit ratio input (not yet implemented)"
    ),
    UtilitySplitMethod.AI_OPTIMIZED: "AI_OPTIMIZED bills cannot be allocated automatically",
}


def default_message(error: Enum) -> str:
    """Human-readable default message for an error kind."""
    return _DEFAULT_MESSAGES.get(type(error), {}).get(error, str(error.value))


__all__ = [
    "AllocateBillData",
    "AllocateError",
    "CreateBillError",
    "MISSING_SPLIT_DATA_HINTS",
    "ReadingError",
    "ServiceResult",
    "TransitionError",
    "UtilityAllocationResult",
    "UtilitySplitContext",
    "default_message",
]
