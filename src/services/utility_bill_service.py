"""Utility bill lifecycle service: creation and post-allocation transitions.

No allocation math and no journal posting here; allocation (the only way
into PROCESSING) lives in UtilityAllocationService.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.property import Property
from src.models.utility_bill import UtilityBill, UtilityBillStatus
from src.services.audit_service import AuditService
from src.services.bill_state_machine import can_transition, is_immutable
from src.services.utility_allocation_service import UtilityAllocationService
from src.services.utility_types import CreateBillError, ServiceResult, TransitionError
from src.services.utility_validators import CreateUtilityBillInput, can_approve_bill

logger = logging.getLogger(__name__)

CreateBillResult = ServiceResult[UtilityBill, CreateBillError]
TransitionResult = ServiceResult[UtilityBill, TransitionError]

# Which CreateBillError a failing input field maps to
_FIELD_ERRORS: dict[str, CreateBillError] = {
    "property_id": CreateBillError.INVALID_PROPERTY,
    "total_amount": CreateBillError.INVALID_AMOUNT,
    "bill_date": CreateBillError.INVALID_DATES,
    "due_date": CreateBillError.INVALID_DATES,
    "period_start": CreateBillError.INVALID_DATES,
    "period_end": CreateBillError.INVALID_DATES,
}


def classify_bill_input_errors(errors: Sequence[dict[str, Any]]) -> tuple[CreateBillError, str]:
    """Map the first input error (pydantic error dicts) to a CreateBillError and message."""
    first = errors[0]
    loc = first.get("loc") or ()
    message = first.get("msg", "Invalid input")
    if not loc and first.get("type") != "value_error":
        # Missing or non-object body
        return CreateBillError.INVALID_INPUT, message
    if not loc:
        # Model-level validator: only the date checks live there
        return CreateBillError.INVALID_DATES, message.removeprefix("Value error, ")
    return _FIELD_ERRORS.get(str(loc[0]), CreateBillError.INVALID_INPUT), f"{loc[0]}: {message}"


class UtilityBillService:
    """Async service for utility bill creation and status transitions."""

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def create_bill(
        self,
        payload: CreateUtilityBillInput | dict,
        actor_id: int | None = None,
    ) -> CreateBillResult:
        """Create a utility bill in DRAFT status.

        Args:
            payload: Validated input or a raw dict to validate
            actor_id: User creating the bill (for the audit log)

        Returns:
            ServiceResult with the created UtilityBill, or a CreateBillError
        """
        if isinstance(payload, CreateUtilityBillInput):
            data = payload
        else:
            try:
                data = CreateUtilityBillInput.model_validate(payload)
            except ValidationError as e:
                error, message = classify_bill_input_errors(e.errors())
                return ServiceResult.fail(error, message)

        property_obj = await self.session.get(Property, data.property_id)
        if property_obj is None:
            return ServiceResult.fail(CreateBillError.PROPERTY_NOT_FOUND)

        bill = UtilityBill(
            property_id=data.property_id,
            provider_name=data.provider_name,
            utility_type=data.utility_type,
            total_amount=data.total_amount,
            split_method=data.split_method,
            import_method=data.import_method,
            bill_date=data.bill_date,
            due_date=data.due_date,
            period_start=data.period_start,
            period_end=data.period_end,
            file_url=data.file_url,
            ocr_confidence=data.ocr_confidence,
            status=UtilityBillStatus.DRAFT,
        )
        self.session.add(bill)
        await self.session.flush()

        AuditService.log(
            self.session,
            entity_type="utility_bill",
            entity_id=bill.id,
            action="create",
            actor_id=actor_id,
            changes={
                "property_id": bill.property_id,
                "provider_name": bill.provider_name,
                "total_amount": str(bill.total_amount),
                "split_method": bill.split_method.value,
            },
        )
        await self.session.commit()

        logger.info(
            "Created utility bill %d for property %d (%s, %s)",
            bill.id,
            bill.property_id,
            bill.provider_name,
            bill.total_amount,
        )
        return ServiceResult.ok(bill)

    async def get_bill_by_id(self, bill_id: int) -> UtilityBill | None:
        result = await self.session.execute(select(UtilityBill).where(UtilityBill.id == bill_id))
        return result.scalar_one_or_none()

    async def approve_bill(self, bill_id: int, actor_id: int | None = None) -> TransitionResult:
        """Approve an allocated bill (PROCESSING or REVIEW_REQUIRED -> APPROVED).

        Allocations must exist and add up to the bill total.
        """
        bill = await self._load_for_update(bill_id)
        if bill is None:
            return await self._refuse(bill_id, TransitionError.BILL_NOT_FOUND)

        allocations = await UtilityAllocationService(self.session).get_allocations_for_bill(
            bill_id
        )
        refusal = can_approve_bill(bill.status, bill.total_amount, allocations)
        if refusal is not None:
            return await self._refuse(bill_id, refusal)

        return await self._transition(
            bill,
            UtilityBillStatus.APPROVED,
            action="approve",
            actor_id=actor_id,
            approved_at=datetime.now(timezone.utc),
        )

    async def flag_for_review(self, bill_id: int, actor_id: int | None = None) -> TransitionResult:
        """Send an allocated bill to manual review (PROCESSING -> REVIEW_REQUIRED)."""
        bill = await self._load_for_update(bill_id)
        if bill is None:
            return await self._refuse(bill_id, TransitionError.BILL_NOT_FOUND)
        return await self._transition(
            bill, UtilityBillStatus.REVIEW_REQUIRED, action="review", actor_id=actor_id
        )

    async def reject_bill(
        self,
        bill_id: int,
        reason: str | None = None,
        actor_id: int | None = None,
    ) -> TransitionResult:
        """Reject a bill from any state before POSTED."""
        bill = await self._load_for_update(bill_id)
        if bill is None:
            return await self._refuse(bill_id, TransitionError.BILL_NOT_FOUND)
        return await self._transition(
            bill,
            UtilityBillStatus.REJECTED,
            action="reject",
            actor_id=actor_id,
            rejected_at=datetime.now(timezone.utc),
            rejection_reason=reason,
        )

    async def _load_for_update(self, bill_id: int) -> UtilityBill | None:
        result = await self.session.execute(
            select(UtilityBill).where(UtilityBill.id == bill_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _refuse(self, bill_id: int, error: TransitionError) -> TransitionResult:
        await self.session.rollback()
        logger.warning("Transition refused for bill %d: %s", bill_id, error.value)
        return ServiceResult.fail(error)

    async def _transition(
        self,
        bill: UtilityBill,
        target: UtilityBillStatus,
        action: str,
        actor_id: int | None,
        **fields,
    ) -> TransitionResult:
        current = bill.status
        if is_immutable(current):
            return await self._refuse(bill.id, TransitionError.BILL_ALREADY_POSTED)
        if not can_transition(current, target):
            return await self._refuse(bill.id, TransitionError.INVALID_STATUS)

        bill.status = target
        for name, value in fields.items():
            setattr(bill, name, value)

        AuditService.log_bill_transition(
            self.session,
            bill,
            action=action,
            from_status=current,
            to_status=target,
            actor_id=actor_id,
            **({"reason": fields["rejection_reason"]} if fields.get("rejection_reason") else {}),
        )
        await self.session.commit()

        logger.info("Bill %d moved %s -> %s", bill.id, current.value, target.value)
        return ServiceResult.ok(bill)


__all__ = [
    "CreateBillResult",
    "TransitionResult",
    "UtilityBillService",
    "classify_bill_input_errors",
]
