"""Meter reading service: append-only raw readings per lease utility.

No billing happens here. Readings feed sub-metered allocations, which take the
delta between the two most recent readings of each lease utility.
"""

import logging
from datetime import datetime, timezone
from typing import Any, NamedTuple, Sequence

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models.lease import LeaseStatus, LeaseUtility
from src.models.utility_reading import UtilityReading
from src.services.audit_service import AuditService
from src.services.utility_types import ReadingError, ServiceResult
from src.services.utility_validators import CreateUtilityReadingInput, validate_new_reading

logger = logging.getLogger(__name__)


class CreateReadingData(NamedTuple):
    """Payload of a recorded reading."""

    reading_id: int


CreateReadingResult = ServiceResult[CreateReadingData, ReadingError]


def classify_reading_input_errors(errors: Sequence[dict[str, Any]]) -> tuple[ReadingError, str]:
    """Map the first input error (pydantic error dicts) to a ReadingError and message."""
    first = errors[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else ""
    if field == "reading_value" and first.get("type") == "greater_than_equal":
        return ReadingError.NEGATIVE_VALUE, "Reading value cannot be negative"
    return ReadingError.INVALID_INPUT, f"{field}: {first.get('msg', 'Invalid input')}"


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps are taken as UTC; stored dates compare as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class UtilityReadingService:
    """Async service for recording and listing meter readings."""

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def create_reading(
        self,
        payload: CreateUtilityReadingInput | dict,
        actor_id: int | None = None,
    ) -> CreateReadingResult:
        """Record a new meter reading.

        The lease utility must belong to an ACTIVE lease and be the tenant's
        responsibility. Meter values never go down in date order, so a backdated
        reading must also fit between the readings around its date.

        Args:
            payload: Validated input or a raw dict to validate
            actor_id: User recording the reading (for the audit log)

        Returns:
            ServiceResult with the new reading id, or a ReadingError
        """
        if isinstance(payload, CreateUtilityReadingInput):
            data = payload
        else:
            try:
                data = CreateUtilityReadingInput.model_validate(payload)
            except ValidationError as e:
                error, message = classify_reading_input_errors(e.errors())
                return ServiceResult.fail(error, message)

        lease_utility = (
            await self.session.execute(
                select(LeaseUtility)
                .where(LeaseUtility.id == data.lease_utility_id)
                .options(selectinload(LeaseUtility.lease))
            )
        ).scalar_one_or_none()
        if lease_utility is None:
            return ServiceResult.fail(ReadingError.LEASE_UTILITY_NOT_FOUND)

        if lease_utility.lease.status != LeaseStatus.ACTIVE:
            return ServiceResult.fail(ReadingError.LEASE_NOT_ACTIVE)

        if not lease_utility.is_tenant_responsible:
            return ServiceResult.fail(ReadingError.UTILITY_NOT_TENANT_RESPONSIBLE)

        reading_date = _as_utc(data.reading_date or datetime.now(timezone.utc))
        previous, following = await self._neighbours(lease_utility.id, reading_date)
        refusal = validate_new_reading(
            data.reading_value,
            previous.reading_value if previous is not None else None,
            following.reading_value if following is not None else None,
        )
        if refusal is not None:
            logger.warning(
                "Reading refused for lease utility %d: %s", lease_utility.id, refusal.value
            )
            if following is not None and data.reading_value > following.reading_value:
                return ServiceResult.fail(
                    refusal,
                    f"Reading value cannot be higher than the later reading "
                    f"{following.reading_value} recorded on {following.reading_date:%Y-%m-%d}",
                )
            return ServiceResult.fail(refusal)

        reading = UtilityReading(
            lease_utility_id=lease_utility.id,
            reading_value=data.reading_value,
            reading_date=reading_date,
        )
        self.session.add(reading)
        await self.session.flush()

        AuditService.log(
            self.session,
            entity_type="utility_reading",
            entity_id=reading.id,
            action="create",
            actor_id=actor_id,
            changes={
                "lease_utility_id": lease_utility.id,
                "reading_value": str(reading.reading_value),
            },
        )
        await self.session.commit()

        logger.info(
            "Recorded reading %s for lease utility %d", reading.reading_value, lease_utility.id
        )
        return ServiceResult.ok(CreateReadingData(reading_id=reading.id))

    async def get_latest_reading(self, lease_utility_id: int) -> UtilityReading | None:
        result = await self.session.execute(
            select(UtilityReading)
            .where(UtilityReading.lease_utility_id == lease_utility_id)
            .order_by(UtilityReading.reading_date.desc(), UtilityReading.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _neighbours(
        self, lease_utility_id: int, reading_date: datetime
    ) -> tuple[UtilityReading | None, UtilityReading | None]:
        """Readings dated at or before, and strictly after, the given moment."""
        in_pairing = UtilityReading.lease_utility_id == lease_utility_id
        previous = await self.session.execute(
            select(UtilityReading)
            .where(in_pairing, UtilityReading.reading_date <= reading_date)
            .order_by(UtilityReading.reading_date.desc(), UtilityReading.id.desc())
            .limit(1)
        )
        following = await self.session.execute(
            select(UtilityReading)
            .where(in_pairing, UtilityReading.reading_date > reading_date)
            .order_by(UtilityReading.reading_date, UtilityReading.id)
            .limit(1)
        )
        return previous.scalar_one_or_none(), following.scalar_one_or_none()

    async def get_readings_for_lease_utility(
        self, lease_utility_id: int
    ) -> list[UtilityReading]:
        """All readings of a lease utility, oldest first."""
        result = await self.session.execute(
            select(UtilityReading)
            .where(UtilityReading.lease_utility_id == lease_utility_id)
            .order_by(UtilityReading.reading_date, UtilityReading.id)
        )
        return list(result.scalars().all())


__all__ = [
    "CreateReadingData",
    "CreateReadingResult",
    "UtilityReadingService",
    "classify_reading_input_errors",
]
