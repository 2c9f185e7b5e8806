"""Utility meter reading ORM model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class UtilityReading(Base, BaseModel):
    """A single meter reading for a lease/utility pairing.

    Readings are append-only. Consumption for a billing period is the delta
    between the two most recent readings.
    """

    __tablename__ = "utility_readings"

    lease_utility_id: Mapped[int] = mapped_column(
        ForeignKey("lease_utilities.id"),
        nullable=False,
        index=True,
    )

    reading_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 3),
        nullable=False,
        comment="Cumulative meter value",
    )

    reading_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    lease_utility: Mapped["LeaseUtility"] = relationship(  # noqa: F821
        "LeaseUtility",
        back_populates="readings",
    )

    __table_args__ = (
        Index("idx_reading_lease_utility_date", "lease_utility_id", "reading_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<UtilityReading(id={self.id}, lease_utility_id={self.lease_utility_id}, "
            f"reading_value={self.reading_value}, reading_date={self.reading_date})>"
        )


__all__ = ["UtilityReading"]
