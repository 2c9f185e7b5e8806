"""Property, unit and house-detail ORM models."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class Property(Base, BaseModel):
    """A managed multi-unit property that receives utility bills.

    Units are always loaded in ascending id order so that every allocation run
    walks them in the same sequence.
    """

    __tablename__ = "properties"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    address: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Street address of the property",
    )

    # Relationships
    units: Mapped[list["Unit"]] = relationship(
        "Unit",
        back_populates="property",
        order_by="Unit.id",
        cascade="all, delete-orphan",
    )

    utility_bills: Mapped[list["UtilityBill"]] = relationship(  # noqa: F821
        "UtilityBill",
        back_populates="property",
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name!r})>"


class Unit(Base, BaseModel):
    """A rentable unit inside a property."""

    __tablename__ = "units"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    unit_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Door or unit label (e.g., 'A1', '12B')",
    )

    # Relationships
    property: Mapped["Property"] = relationship(
        "Property",
        back_populates="units",
    )

    house_detail: Mapped["HouseDetail | None"] = relationship(
        "HouseDetail",
        back_populates="unit",
        uselist=False,
    )

    leases: Mapped[list["Lease"]] = relationship(  # noqa: F821
        "Lease",
        back_populates="unit",
        order_by="Lease.id",
    )

    __table_args__ = (
        UniqueConstraint("property_id", "unit_number", name="uq_unit_property_number"),
    )

    def __repr__(self) -> str:
        return (
            f"<Unit(id={self.id}, property_id={self.property_id}, "
            f"unit_number={self.unit_number!r})>"
        )


class HouseDetail(Base, BaseModel):
    """Physical facts about a unit used by square-footage splits."""

    __tablename__ = "house_details"

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        unique=True,
    )

    size: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Floor area in square feet",
    )

    bedrooms: Mapped[int | None] = mapped_column(nullable=True)

    unit: Mapped["Unit"] = relationship(
        "Unit",
        back_populates="house_detail",
    )

    __table_args__ = (Index("idx_house_detail_unit", "unit_id"),)

    def __repr__(self) -> str:
        return f"<HouseDetail(id={self.id}, unit_id={self.unit_id}, size={self.size})>"


__all__ = ["HouseDetail", "Property", "Unit"]
