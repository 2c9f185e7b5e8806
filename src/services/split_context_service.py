"""Context hydration: gather per-unit split facts before any allocation math.

All database reads for an allocation run happen here. Square footage and
occupant counts are plain projections (absent data becomes None and the
strategy decides). Sub-metered usage is all-or-nothing: one gap anywhere in
the batch makes the whole batch unusable.
"""

import logging
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models.lease import Lease, LeaseStatus, LeaseUtility
from src.models.property import Unit
from src.models.utility_bill import UtilitySplitMethod
from src.models.utility_reading import UtilityReading
from src.services.utility_types import UtilitySplitContext

logger = logging.getLogger(__name__)


class UnitWithLease(NamedTuple):
    """A unit paired with its active lease (None when vacant)."""

    unit: Unit
    lease: Lease | None


class SplitContextBuilder:
    """Builds ``UtilitySplitContext`` lists for the allocation service."""

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def load_units(self, property_id: int) -> list[UnitWithLease]:
        """Load a property's units with house details and active leases.

        Units come back in ascending id order; each unit's active lease is its
        lowest-id ACTIVE lease.

        Args:
            property_id: Property whose units to load

        Returns:
            List of UnitWithLease, empty when the property has no units
        """
        unit_result = await self.session.execute(
            select(Unit)
            .where(Unit.property_id == property_id)
            .options(selectinload(Unit.house_detail))
            .order_by(Unit.id)
        )
        units = list(unit_result.scalars().all())
        if not units:
            return []

        lease_result = await self.session.execute(
            select(Lease)
            .where(
                Lease.unit_id.in_([unit.id for unit in units]),
                Lease.status == LeaseStatus.ACTIVE,
            )
            .options(selectinload(Lease.application))
            .order_by(Lease.id)
        )
        active_by_unit: dict[int, Lease] = {}
        for lease in lease_result.scalars().all():
            active_by_unit.setdefault(lease.unit_id, lease)

        return [UnitWithLease(unit=unit, lease=active_by_unit.get(unit.id)) for unit in units]

    async def fetch_meter_usage_for_leases(
        self,
        lease_ids: list[int],
        utility_type: str,
    ) -> dict[int, Decimal] | None:
        """Compute metered usage per lease from the two latest readings.

        One query fetches every tenant-paid lease utility of the given type
        outer-joined to its two most recent readings. Usage is only ever
        summed within one utility type, so a lease with several meters of that
        type gets the sum of their deltas.

        Args:
            lease_ids: Active leases whose usage is needed
            utility_type: Utility kind being billed ("water", "electricity", ...)

        Returns:
            Dict mapping lease_id to usage delta, or None when any pairing has
            fewer than two readings, any delta is negative, or any lease has no
            pairing at all
        """
        if not lease_ids:
            return {}

        # Landlord-paid pairings never take readings, so they cannot be billed by usage
        in_scope = select(LeaseUtility.id).where(
            LeaseUtility.lease_id.in_(lease_ids),
            LeaseUtility.is_tenant_responsible.is_(True),
            LeaseUtility.utility_type == utility_type,
        )

        ranked = (
            select(
                UtilityReading.lease_utility_id.label("lease_utility_id"),
                UtilityReading.reading_value.label("reading_value"),
                func.row_number()
                .over(
                    partition_by=UtilityReading.lease_utility_id,
                    order_by=(UtilityReading.reading_date.desc(), UtilityReading.id.desc()),
                )
                .label("reading_rank"),
            )
            .where(UtilityReading.lease_utility_id.in_(in_scope))
            .subquery()
        )

        stmt = (
            select(
                LeaseUtility.id,
                LeaseUtility.lease_id,
                ranked.c.reading_value,
                ranked.c.reading_rank,
            )
            .outerjoin(
                ranked,
                and_(
                    ranked.c.lease_utility_id == LeaseUtility.id,
                    ranked.c.reading_rank <= 2,
                ),
            )
            .where(LeaseUtility.id.in_(in_scope))
            .order_by(LeaseUtility.id, ranked.c.reading_rank)
        )
        rows = (await self.session.execute(stmt)).all()

        lease_by_pairing: dict[int, int] = {}
        values_by_pairing: dict[int, list[Decimal]] = {}
        for lease_utility_id, lease_id, reading_value, _rank in rows:
            lease_by_pairing[lease_utility_id] = lease_id
            values = values_by_pairing.setdefault(lease_utility_id, [])
            if reading_value is not None:
                values.append(Decimal(str(reading_value)))

        usage_by_lease: dict[int, Decimal] = {}
        for lease_utility_id, values in values_by_pairing.items():
            lease_id = lease_by_pairing[lease_utility_id]
            if len(values) < 2:
                logger.warning(
                    "Lease utility %d (lease %d) has %d reading(s); two are required",
                    lease_utility_id,
                    lease_id,
                    len(values),
                )
                return None

            latest, previous = values[0], values[1]
            usage = latest - previous
            if usage < 0:
                logger.warning(
                    "Negative usage on lease utility %d (%s -> %s)",
                    lease_utility_id,
                    previous,
                    latest,
                )
                return None

            usage_by_lease[lease_id] = usage_by_lease.get(lease_id, Decimal(0)) + usage

        missing = [lease_id for lease_id in lease_ids if lease_id not in usage_by_lease]
        if missing:
            logger.warning("No metered utility for lease(s) %s", missing)
            return None

        return usage_by_lease

    async def build_split_contexts(
        self,
        units: list[UnitWithLease],
        split_method: UtilitySplitMethod,
        utility_type: str | None = None,
    ) -> list[UtilitySplitContext] | None:
        """Project units into split contexts, in the given unit order.

        Returns:
            One context per unit, or None when sub-metered data is unusable
            (including a sub-metered split without a utility type)
        """
        usage_by_lease: dict[int, Decimal] = {}
        if split_method == UtilitySplitMethod.SUB_METERED:
            if not utility_type:
                return None
            lease_ids = [entry.lease.id for entry in units if entry.lease is not None]
            fetched = await self.fetch_meter_usage_for_leases(lease_ids, utility_type)
            if fetched is None:
                return None
            usage_by_lease = fetched

        contexts = []
        for unit, lease in units:
            detail = unit.house_detail
            application = lease.application if lease is not None else None
            contexts.append(
                UtilitySplitContext(
                    unit_id=unit.id,
                    lease_id=lease.id if lease is not None else None,
                    sq_footage=detail.size if detail is not None else None,
                    occupant_count=application.occupants if application is not None else None,
                    usage_delta=usage_by_lease.get(lease.id) if lease is not None else None,
                    # Ratios need their own input mechanism
                    custom_ratio=None,
                )
            )
        return contexts


__all__ = ["SplitContextBuilder", "UnitWithLease"]
