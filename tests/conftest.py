"""Pytest configuration and shared fixtures for the utility billing tests."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.lease import Lease, LeaseApplication, LeaseStatus, LeaseUtility
from src.models.property import HouseDetail, Property, Unit
from src.models.utility_bill import UtilityBill, UtilityBillStatus, UtilitySplitMethod
from src.models.utility_reading import UtilityReading
from src.services.db import create_engine_for_url, create_schema, create_session_factory


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with all tables created; one per test."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


class PropertyBuilder:
    """Seeds a property with units, leases and meter readings.

    Every add_* call flushes so ids are available immediately; call commit()
    once the fixture data is complete.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.property: Property | None = None

    async def create_property(self, name: str = "Riverside Court") -> Property:
        self.property = Property(name=name, address="12 River Road")
        self.session.add(self.property)
        await self.session.flush()
        return self.property

    async def add_unit(
        self,
        unit_number: str,
        size: Decimal | str | None = None,
        occupants: int | None = None,
        lease_status: LeaseStatus | None = LeaseStatus.ACTIVE,
    ) -> tuple[Unit, Lease | None]:
        """Add a unit, optionally with a house-detail size and a lease.

        Pass lease_status=None for a vacant unit.
        """
        unit = Unit(property_id=self.property.id, unit_number=unit_number)
        self.session.add(unit)
        await self.session.flush()

        if size is not None:
            self.session.add(HouseDetail(unit_id=unit.id, size=Decimal(str(size))))

        lease = None
        if lease_status is not None:
            application = LeaseApplication(
                applicant_name=f"Tenant {unit_number}", occupants=occupants
            )
            self.session.add(application)
            await self.session.flush()
            lease = Lease(
                unit_id=unit.id,
                application_id=application.id,
                status=lease_status,
                start_date=date(2026, 1, 1),
            )
            self.session.add(lease)
        await self.session.flush()
        return unit, lease

    async def add_lease_utility(
        self,
        lease: Lease,
        utility_type: str = "water",
        readings: list[Decimal | str] | None = None,
        is_tenant_responsible: bool = True,
    ) -> LeaseUtility:
        """Add a metered utility to a lease with readings, oldest first."""
        lease_utility = LeaseUtility(
            lease_id=lease.id,
            utility_type=utility_type,
            is_tenant_responsible=is_tenant_responsible,
        )
        self.session.add(lease_utility)
        await self.session.flush()

        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for offset, value in enumerate(readings or []):
            self.session.add(
                UtilityReading(
                    lease_utility_id=lease_utility.id,
                    reading_value=Decimal(str(value)),
                    reading_date=start + timedelta(days=30 * offset),
                )
            )
        await self.session.flush()
        return lease_utility

    async def add_bill(
        self,
        total_amount: Decimal | str,
        split_method: UtilitySplitMethod = UtilitySplitMethod.EQUAL,
        status: UtilityBillStatus = UtilityBillStatus.DRAFT,
        utility_type: str | None = None,
    ) -> UtilityBill:
        bill = UtilityBill(
            property_id=self.property.id,
            provider_name="City Water",
            utility_type=utility_type,
            total_amount=Decimal(str(total_amount)),
            split_method=split_method,
            status=status,
            bill_date=date(2026, 3, 1),
            due_date=date(2026, 3, 31),
        )
        self.session.add(bill)
        await self.session.flush()
        return bill

    async def commit(self) -> None:
        await self.session.commit()


@pytest_asyncio.fixture
async def builder(session):
    """PropertyBuilder bound to the test session, with a property created."""
    builder = PropertyBuilder(session)
    await builder.create_property()
    return builder

