"""Audit service for logging utility bill and reading lifecycle events."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit_log import AuditLog
from src.models.utility_bill import UtilityBill, UtilityBillStatus


class AuditService:
    """Service for audit log operations.

    Entries are only added to the session; they commit or roll back together
    with the change they describe.
    """

    @staticmethod
    def log(
        db: AsyncSession,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict | None = None,
    ) -> AuditLog:
        """Create audit log entry (one-liner).

        Args:
            db: Database session
            entity_type: Type of entity ("utility_bill", "utility_reading")
            entity_id: Primary key of the entity
            action: Action performed ("create", "allocate", "approve", ...)
            actor_id: User who performed the action (optional)
            changes: Optional JSON snapshot of changed fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(audit)
        return audit

    @staticmethod
    def log_bill_transition(
        db: AsyncSession,
        bill: UtilityBill,
        action: str,
        from_status: UtilityBillStatus,
        to_status: UtilityBillStatus,
        actor_id: int | None = None,
        **extra: Any,
    ) -> AuditLog:
        """Record a bill status change with its before/after status."""
        changes: dict[str, Any] = {
            "from_status": from_status.value,
            "to_status": to_status.value,
            "total_amount": str(bill.total_amount),
        }
        changes.update(extra)
        return AuditService.log(
            db,
            entity_type="utility_bill",
            entity_id=bill.id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )


__all__ = ["AuditService"]
