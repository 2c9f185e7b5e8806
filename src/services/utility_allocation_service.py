"""Utility allocation engine: split a DRAFT bill across its property's units.

Deterministic and auditable. Either every allocation row, the DRAFT ->
PROCESSING transition and the audit entry commit together, or nothing is
written.

Business rules:
- Zero occupants on an ACTIVE lease is missing data for occupancy splits.
- Sub-metered properties cannot mix metered and unmetered leases.
- Sub-metered bills must name their utility type; usage of different
  utilities is never added together.
- Percentages are stored for audit; downstream code must not recompute
  amounts from them.
- Single-unit properties go through the same path (100% to one unit).
- CUSTOM_RATIO bills are refused until a ratio input mechanism exists.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.utility_allocation import UtilityAllocation
from src.models.utility_bill import UtilityBill, UtilityBillStatus, UtilitySplitMethod
from src.services.audit_service import AuditService
from src.services.bill_state_machine import is_immutable
from src.services.db import apply_statement_timeout
from src.services.money import ZERO, is_valid_amount
from src.services.rounding import apply_rounding_correction
from src.services.split_context_service import SplitContextBuilder
from src.services.split_strategies import SPLIT_STRATEGIES, SplitStrategy
from src.services.utility_types import (
    MISSING_SPLIT_DATA_HINTS,
    AllocateBillData,
    AllocateError,
    ServiceResult,
    UtilityAllocationResult,
)
from src.services.utility_validators import allocation_sum_difference, can_allocate_bill

logger = logging.getLogger(__name__)

AllocateBillResult = ServiceResult[AllocateBillData, AllocateError]


class UtilityAllocationService:
    """Async service that allocates utility bills and reads allocations back."""

    def __init__(
        self,
        session: AsyncSession,
        allocation_timeout_seconds: int = 5,
        strategies: dict[UtilitySplitMethod, SplitStrategy] | None = None,
    ):
        """Initialize with async database session.

        Args:
            session: SQLAlchemy async session; the service commits or rolls back
            allocation_timeout_seconds: Statement timeout for the allocation
                transaction (PostgreSQL only)
            strategies: Split method registry (defaults to SPLIT_STRATEGIES)
        """
        self.session = session
        self.allocation_timeout_seconds = allocation_timeout_seconds
        self.strategies = strategies if strategies is not None else SPLIT_STRATEGIES
        self.context_builder = SplitContextBuilder(session)

    async def allocate_utility_bill(
        self,
        bill_id: int,
        actor_id: int | None = None,
    ) -> AllocateBillResult:
        """Allocate a DRAFT bill across all units of its property.

        Args:
            bill_id: Utility bill to allocate
            actor_id: User triggering the allocation (for the audit log)

        Returns:
            ServiceResult with AllocateBillData on success, or an AllocateError.
            Failures leave the bill and its allocations untouched.
        """
        try:
            result = await self._allocate(bill_id, actor_id)
        except IntegrityError:
            # A concurrent allocation inserted rows for this bill first
            await self.session.rollback()
            result = ServiceResult.fail(AllocateError.ALREADY_ALLOCATED)
        except Exception:
            await self.session.rollback()
            raise

        if not result.success:
            await self.session.rollback()
            logger.warning(
                "Allocation refused for bill %d: %s (%s)",
                bill_id,
                result.error.value,
                result.message,
            )
        return result

    async def _allocate(self, bill_id: int, actor_id: int | None) -> AllocateBillResult:
        await apply_statement_timeout(self.session, self.allocation_timeout_seconds)

        # 1. Lock the bill row for the rest of the transaction
        bill = (
            await self.session.execute(
                select(UtilityBill).where(UtilityBill.id == bill_id).with_for_update()
            )
        ).scalar_one_or_none()
        if bill is None:
            return ServiceResult.fail(AllocateError.BILL_NOT_FOUND)

        # 2. POSTED bills are immutable, whatever else is true
        if is_immutable(bill.status):
            return ServiceResult.fail(
                AllocateError.INVALID_STATUS,
                f"Bill {bill_id} is posted and can no longer be allocated",
            )

        # 3. One-shot per bill; reported ahead of the status check so a repeated
        # call on an allocated (PROCESSING) bill says ALREADY_ALLOCATED
        if await self._count_allocations(bill_id) > 0:
            return ServiceResult.fail(AllocateError.ALREADY_ALLOCATED)

        # 4. Only DRAFT bills can be allocated
        refusal = can_allocate_bill(bill.status)
        if refusal is not None:
            return ServiceResult.fail(
                refusal,
                f"Only DRAFT bills can be allocated (bill {bill_id} is {bill.status.value})",
            )

        # 5. Amount boundary check, before any unit data is read
        total_amount = bill.total_amount
        if not is_valid_amount(total_amount):
            return ServiceResult.fail(AllocateError.INVALID_AMOUNT)

        # 6. Units; a single unit is valid
        units = await self.context_builder.load_units(bill.property_id)
        if not units:
            return ServiceResult.fail(AllocateError.NO_UNITS_FOUND)

        split_method = bill.split_method
        hint = MISSING_SPLIT_DATA_HINTS.get(split_method)

        # 7. CUSTOM_RATIO has no ratio input yet
        if split_method == UtilitySplitMethod.CUSTOM_RATIO:
            return ServiceResult.fail(AllocateError.MISSING_SPLIT_DATA, hint)

        strategy = self.strategies.get(split_method)
        if strategy is None:
            return ServiceResult.fail(
                AllocateError.MISSING_SPLIT_DATA,
                hint or f"No allocation strategy for {split_method.value}",
            )

        # Usage is only comparable within one utility type
        if split_method == UtilitySplitMethod.SUB_METERED and not bill.utility_type:
            return ServiceResult.fail(
                AllocateError.MISSING_SPLIT_DATA,
                "Set the bill's utility type before allocating by metered usage",
            )

        # 8. Hydrate (batch reads for meter data)
        contexts = await self.context_builder.build_split_contexts(
            units, split_method, bill.utility_type
        )
        if contexts is None:
            return ServiceResult.fail(AllocateError.MISSING_SPLIT_DATA, hint)

        # 9. Pure math
        raw_allocations = strategy(contexts, total_amount)
        if raw_allocations is None:
            return ServiceResult.fail(AllocateError.MISSING_SPLIT_DATA, hint)

        # 10-11. Rounding correction, then the final integrity check
        allocations = apply_rounding_correction(raw_allocations, total_amount)
        difference = allocation_sum_difference(allocations, total_amount)
        if difference != 0:
            return ServiceResult.fail(
                AllocateError.SUM_MISMATCH,
                f"Allocations are off by {difference} against total {total_amount}",
            )

        # 12. Insert allocations + DRAFT -> PROCESSING in one transaction
        if not await self._persist(bill, allocations, actor_id):
            return ServiceResult.fail(
                AllocateError.INVALID_STATUS,
                f"Bill {bill_id} left DRAFT while it was being allocated",
            )

        logger.info(
            "Allocated bill %d (%s) across %d unit(s), total %s",
            bill_id,
            split_method.value,
            len(allocations),
            total_amount,
        )
        return ServiceResult.ok(
            AllocateBillData(allocations=allocations, status=UtilityBillStatus.PROCESSING)
        )

    async def _count_allocations(self, bill_id: int) -> int:
        result = await self.session.execute(
            select(func.count(UtilityAllocation.id)).where(
                UtilityAllocation.utility_bill_id == bill_id
            )
        )
        return int(result.scalar() or 0)

    async def _persist(
        self,
        bill: UtilityBill,
        allocations: list[UtilityAllocationResult],
        actor_id: int | None,
    ) -> bool:
        """Write allocation rows and move the bill to PROCESSING, then commit.

        Returns False (nothing committed) when the bill is no longer DRAFT.
        Raises IntegrityError when another allocation for the bill won the race.
        """
        self.session.add_all(
            [
                UtilityAllocation(
                    utility_bill_id=bill.id,
                    unit_id=allocation.unit_id,
                    amount=allocation.amount,
                    percentage=allocation.percentage,
                )
                for allocation in allocations
            ]
        )
        await self.session.flush()

        transition = await self.session.execute(
            update(UtilityBill)
            .where(
                UtilityBill.id == bill.id,
                UtilityBill.status == UtilityBillStatus.DRAFT,
            )
            .values(
                status=UtilityBillStatus.PROCESSING,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="evaluate")
        )
        if transition.rowcount != 1:
            return False

        AuditService.log_bill_transition(
            self.session,
            bill,
            action="allocate",
            from_status=UtilityBillStatus.DRAFT,
            to_status=UtilityBillStatus.PROCESSING,
            actor_id=actor_id,
            split_method=bill.split_method.value,
            allocation_count=len(allocations),
        )
        await self.session.commit()
        return True

    async def get_allocations_for_bill(self, bill_id: int) -> list[UtilityAllocationResult]:
        """Read a bill's allocations in insertion order."""
        result = await self.session.execute(
            select(UtilityAllocation)
            .where(UtilityAllocation.utility_bill_id == bill_id)
            .order_by(UtilityAllocation.id)
        )
        return [
            UtilityAllocationResult(
                unit_id=row.unit_id,
                amount=row.amount,
                percentage=row.percentage if row.percentage is not None else ZERO,
            )
            for row in result.scalars().all()
        ]


__all__ = ["AllocateBillResult", "UtilityAllocationService"]
