"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from src.models.audit_log import AuditLog  # noqa: E402
from src.models.lease import Lease, LeaseApplication, LeaseStatus, LeaseUtility  # noqa: E402
from src.models.property import HouseDetail, Property, Unit  # noqa: E402
from src.models.utility_allocation import UtilityAllocation  # noqa: E402
from src.models.utility_bill import (  # noqa: E402
    UtilityBill,
    UtilityBillStatus,
    UtilityImportMethod,
    UtilitySplitMethod,
)
from src.models.utility_reading import UtilityReading  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "HouseDetail",
    "Lease",
    "LeaseApplication",
    "LeaseStatus",
    "LeaseUtility",
    "Property",
    "Unit",
    "UtilityAllocation",
    "UtilityBill",
    "UtilityBillStatus",
    "UtilityImportMethod",
    "UtilityReading",
    "UtilitySplitMethod",
]
