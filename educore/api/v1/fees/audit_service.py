"""
Fee audit trail. Call inside the transaction that makes the financial change;
the caller commits.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.models import FeeAuditLog


async def log_fee_audit(
    db: AsyncSession,
    school_id: UUID,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    changed_by: Optional[UUID],
) -> None:
    db.add(
        FeeAuditLog(
            school_id=school_id,
            reference_table=reference_table,
            reference_id=reference_id,
            action_type=action_type,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
        )
    )
