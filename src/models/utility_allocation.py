"""Utility allocation ORM model: one unit's share of a bill."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class UtilityAllocation(Base, BaseModel):
    """Persisted share of a utility bill for a single unit.

    Rows are inserted as one batch per bill and never updated by the
    allocation engine. ``percentage`` is derived at allocation time for
    display and audit; ``amount`` is the authoritative figure.
    """

    __tablename__ = "utility_allocations"

    utility_bill_id: Mapped[int] = mapped_column(
        ForeignKey("utility_bills.id"),
        nullable=False,
        index=True,
    )

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Derived share in percent (0-100), not used for recomputation",
    )

    utility_bill: Mapped["UtilityBill"] = relationship(  # noqa: F821
        "UtilityBill",
        back_populates="allocations",
    )

    unit: Mapped["Unit"] = relationship("Unit")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("utility_bill_id", "unit_id", name="uq_allocation_bill_unit"),
    )

    def __repr__(self) -> str:
        return (
            f"<UtilityAllocation(id={self.id}, utility_bill_id={self.utility_bill_id}, "
            f"unit_id={self.unit_id}, amount={self.amount}, percentage={self.percentage})>"
        )


__all__ = ["UtilityAllocation"]
