"""Utility bill ORM model and its lifecycle enums."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class UtilityBillStatus(str, Enum):
    """Lifecycle states of a utility bill."""

    DRAFT = "DRAFT"
    """Entered but not yet split across units"""

    PROCESSING = "PROCESSING"
    """Allocated; awaiting approval"""

    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    """Allocation flagged for manual review"""

    APPROVED = "APPROVED"
    """Allocation approved; ready for posting"""

    POSTED = "POSTED"
    """Posted to financials; immutable"""

    REJECTED = "REJECTED"
    """Bill discarded"""


class UtilitySplitMethod(str, Enum):
    """Strategies for splitting a bill across units."""

    EQUAL = "EQUAL"
    OCCUPANCY_BASED = "OCCUPANCY_BASED"
    SQ_FOOTAGE = "SQ_FOOTAGE"
    SUB_METERED = "SUB_METERED"
    CUSTOM_RATIO = "CUSTOM_RATIO"
    """Ratios are decimals between 0.0 and 1.0 that sum to 1.0 across units"""

    AI_OPTIMIZED = "AI_OPTIMIZED"


class UtilityImportMethod(str, Enum):
    """How the bill entered the system."""

    CSV = "CSV"
    API = "API"
    PDF_OCR = "PDF_OCR"
    MANUAL_ENTRY = "MANUAL_ENTRY"
    IMAGE_SCAN = "IMAGE_SCAN"


class UtilityBill(Base, BaseModel):
    """One provider invoice for a property.

    Created in DRAFT, moved to PROCESSING only by a successful allocation and
    never touched again by this service once POSTED.
    """

    __tablename__ = "utility_bills"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    provider_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    utility_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Restricts sub-metered splits to lease utilities of this type",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    split_method: Mapped[UtilitySplitMethod] = mapped_column(
        SQLEnum(UtilitySplitMethod),
        nullable=False,
        default=UtilitySplitMethod.EQUAL,
    )

    import_method: Mapped[UtilityImportMethod] = mapped_column(
        SQLEnum(UtilityImportMethod),
        nullable=False,
        default=UtilityImportMethod.MANUAL_ENTRY,
    )

    status: Mapped[UtilityBillStatus] = mapped_column(
        SQLEnum(UtilityBillStatus),
        nullable=False,
        default=UtilityBillStatus.DRAFT,
        index=True,
    )

    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)

    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ocr_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    property: Mapped["Property"] = relationship(  # noqa: F821
        "Property",
        back_populates="utility_bills",
    )

    allocations: Mapped[list["UtilityAllocation"]] = relationship(  # noqa: F821
        "UtilityAllocation",
        back_populates="utility_bill",
        order_by="UtilityAllocation.id",
    )

    __table_args__ = (Index("idx_utility_bill_property_status", "property_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<UtilityBill(id={self.id}, property_id={self.property_id}, "
            f"total_amount={self.total_amount}, split_method={self.split_method}, "
            f"status={self.status})>"
        )


__all__ = ["UtilityBill", "UtilityBillStatus", "UtilityImportMethod", "UtilitySplitMethod"]
