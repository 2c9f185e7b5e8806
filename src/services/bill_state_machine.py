"""Utility bill lifecycle: which status transitions are legal.

DRAFT -> PROCESSING -> (REVIEW_REQUIRED) -> APPROVED -> POSTED, with REJECTED
reachable from every state before POSTED. POSTED and REJECTED are terminal.
PROCESSING is only ever entered through a successful allocation.
"""

from src.models.utility_bill import UtilityBillStatus

ALLOWED_TRANSITIONS: dict[UtilityBillStatus, frozenset[UtilityBillStatus]] = {
    UtilityBillStatus.DRAFT: frozenset(
        {UtilityBillStatus.PROCESSING, UtilityBillStatus.REJECTED}
    ),
    UtilityBillStatus.PROCESSING: frozenset(
        {
            UtilityBillStatus.REVIEW_REQUIRED,
            UtilityBillStatus.APPROVED,
            UtilityBillStatus.REJECTED,
        }
    ),
    UtilityBillStatus.REVIEW_REQUIRED: frozenset(
        {UtilityBillStatus.APPROVED, UtilityBillStatus.REJECTED}
    ),
    UtilityBillStatus.APPROVED: frozenset(
        {UtilityBillStatus.POSTED, UtilityBillStatus.REJECTED}
    ),
    UtilityBillStatus.POSTED: frozenset(),
    UtilityBillStatus.REJECTED: frozenset(),
}


def can_transition(current: UtilityBillStatus, target: UtilityBillStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: UtilityBillStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def is_immutable(status: UtilityBillStatus) -> bool:
    """POSTED bills are never modified again."""
    return status == UtilityBillStatus.POSTED


__all__ = ["ALLOWED_TRANSITIONS", "can_transition", "is_immutable", "is_terminal"]
