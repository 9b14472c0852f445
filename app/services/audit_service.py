from typing import Optional, Dict, Any
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """
    Audit service for recording landlord changes to billing records.

    Entries are added to the caller's session and committed together with
    the change they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        user_id: str,
        action: str,
        entity_type: str,
        description: str,
        entity_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Create an audit log entry.

        Args:
            user_id: The landlord performing the action
            action: create, update or delete
            entity_type: Type of entity (invoice, property, tenant)
            description: Human-readable description
            entity_id: ID of the affected entity
            metadata: Extra context such as the changed fields

        Returns:
            The created AuditLog entry
        """
        audit_log = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            metadata_=metadata,
        )
        self.db.add(audit_log)
        await self.db.flush()

        logger.info(
            f"Audit: user={user_id} action={action} entity={entity_type}:{entity_id} {description}"
        )
        return audit_log

    async def log_recurring_invoice_created(
        self,
        user_id: str,
        recurring_invoice_id: int,
        tenant_name: str,
        frequency: str,
        day_of_month: int,
    ) -> AuditLog:
        """Log recurring invoice creation."""
        return await self.log(
            user_id=user_id,
            action="create",
            entity_type="invoice",
            entity_id=recurring_invoice_id,
            description=f"Created recurring invoice for tenant {tenant_name}",
            metadata={"frequency": frequency, "day_of_month": day_of_month},
        )

    async def log_recurring_invoice_updated(
        self,
        user_id: str,
        recurring_invoice_id: int,
        changes: Dict[str, Any],
    ) -> AuditLog:
        """Log recurring invoice update."""
        return await self.log(
            user_id=user_id,
            action="update",
            entity_type="invoice",
            entity_id=recurring_invoice_id,
            description=f"Updated recurring invoice {recurring_invoice_id}",
            metadata=changes,
        )

    async def log_recurring_invoice_deleted(
        self,
        user_id: str,
        recurring_invoice_id: int,
    ) -> AuditLog:
        """Log recurring invoice deletion."""
        return await self.log(
            user_id=user_id,
            action="delete",
            entity_type="invoice",
            entity_id=recurring_invoice_id,
            description=f"Deleted recurring invoice {recurring_invoice_id}",
        )
