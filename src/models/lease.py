"""Lease, lease application and lease-utility ORM models."""

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class LeaseStatus(str, Enum):
    """Lifecycle status of a lease."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"


class LeaseApplication(Base, BaseModel):
    """Rental application a lease was created from.

    Carries the declared occupant count used by occupancy-based splits.
    """

    __tablename__ = "lease_applications"

    applicant_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    occupants: Mapped[int | None] = mapped_column(
        nullable=True,
        comment="Number of people living in the unit",
    )

    def __repr__(self) -> str:
        return f"<LeaseApplication(id={self.id}, occupants={self.occupants})>"


class Lease(Base, BaseModel):
    """A tenant's lease on a unit."""

    __tablename__ = "leases"

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )

    application_id: Mapped[int | None] = mapped_column(
        ForeignKey("lease_applications.id"),
        nullable=True,
    )

    status: Mapped[LeaseStatus] = mapped_column(
        SQLEnum(LeaseStatus),
        nullable=False,
        default=LeaseStatus.DRAFT,
        index=True,
    )

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    unit: Mapped["Unit"] = relationship(  # noqa: F821
        "Unit",
        back_populates="leases",
    )

    application: Mapped["LeaseApplication | None"] = relationship(
        "LeaseApplication",
        foreign_keys=[application_id],
    )

    utilities: Mapped[list["LeaseUtility"]] = relationship(
        "LeaseUtility",
        back_populates="lease",
        order_by="LeaseUtility.id",
    )

    __table_args__ = (Index("idx_lease_unit_status", "unit_id", "status"),)

    def __repr__(self) -> str:
        return f"<Lease(id={self.id}, unit_id={self.unit_id}, status={self.status})>"


class LeaseUtility(Base, BaseModel):
    """Pairing of a lease with a metered utility (water, electricity, gas)."""

    __tablename__ = "lease_utilities"

    lease_id: Mapped[int] = mapped_column(
        ForeignKey("leases.id"),
        nullable=False,
        index=True,
    )

    utility_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Utility kind, e.g. 'water' or 'electricity'",
    )

    is_tenant_responsible: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    lease: Mapped["Lease"] = relationship(
        "Lease",
        back_populates="utilities",
    )

    readings: Mapped[list["UtilityReading"]] = relationship(  # noqa: F821
        "UtilityReading",
        back_populates="lease_utility",
        order_by="UtilityReading.reading_date",
    )

    def __repr__(self) -> str:
        return (
            f"<LeaseUtility(id={self.id}, lease_id={self.lease_id}, "
            f"utility_type={self.utility_type!r})>"
        )


__all__ = ["Lease", "LeaseApplication", "LeaseStatus", "LeaseUtility"]
