"""
Tenant context: the (school, branch, role, user) every service call runs under.

- Non-SUPER_ADMIN users are bound to the school/branch in their access token;
  a different X-School-Id / X-Branch-Id header is treated as tampering (403).
- SUPER_ADMIN may select the school/branch through those headers. Token values
  still win when present.
"""
import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import or_

from educore.auth.dependencies import get_current_user
from educore.auth.schemas import CurrentUser
from educore.core.exceptions import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

SUPER_ADMIN = "SUPER_ADMIN"


class TenantContext(BaseModel):
    school_id: UUID
    branch_id: Optional[UUID] = None
    role: str
    user_id: UUID

    class Config:
        frozen = True

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    def scope(self, stmt, model):
        """Filter stmt to this school; with a branch set, keep that branch plus school-wide rows."""
        stmt = stmt.where(model.school_id == self.school_id)
        if self.branch_id is not None and hasattr(model, "branch_id"):
            stmt = stmt.where(or_(model.branch_id == self.branch_id, model.branch_id.is_(None)))
        return stmt

    def ensure_owned(self, obj: Any, label: str) -> Any:
        """404 when obj is missing, 403 when it belongs to another school or branch."""
        if obj is None:
            raise NotFoundError(f"{label} not found")
        if obj.school_id != self.school_id:
            logger.warning(
                "Cross-tenant access to %s %s by user %s (school %s)",
                label, getattr(obj, "id", None), self.user_id, self.school_id,
            )
            raise ForbiddenError(f"{label} belongs to another school")
        obj_branch = getattr(obj, "branch_id", None)
        if self.branch_id is not None and obj_branch is not None and obj_branch != self.branch_id:
            logger.warning(
                "Cross-branch access to %s %s by user %s (branch %s)",
                label, getattr(obj, "id", None), self.user_id, self.branch_id,
            )
            raise ForbiddenError(f"{label} belongs to another branch")
        return obj


def _parse_header_uuid(value: Optional[str], header: str) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {header} header")


def resolve_tenant(
    current_user: CurrentUser,
    header_school_id: Optional[UUID],
    header_branch_id: Optional[UUID],
) -> TenantContext:
    is_super_admin = current_user.role == SUPER_ADMIN

    if not is_super_admin:
        if header_school_id and current_user.school_id and header_school_id != current_user.school_id:
            logger.warning("X-School-Id mismatch for user %s", current_user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Tenant mismatch: invalid X-School-Id for this token.",
            )
        if header_branch_id and current_user.branch_id and header_branch_id != current_user.branch_id:
            logger.warning("X-Branch-Id mismatch for user %s", current_user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Tenant mismatch: invalid X-Branch-Id for this token.",
            )
        school_id = current_user.school_id
        branch_id = current_user.branch_id
    else:
        school_id = current_user.school_id or header_school_id
        branch_id = current_user.branch_id or header_branch_id

    if school_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No school association found. Please contact support.",
        )

    return TenantContext(
        school_id=school_id,
        branch_id=branch_id,
        role=current_user.role,
        user_id=current_user.id,
    )


async def get_tenant_context(
    current_user: CurrentUser = Depends(get_current_user),
    x_school_id: Optional[str] = Header(None, alias="X-School-Id"),
    x_branch_id: Optional[str] = Header(None, alias="X-Branch-Id"),
) -> TenantContext:
    return resolve_tenant(
        current_user,
        _parse_header_uuid(x_school_id, "X-School-Id"),
        _parse_header_uuid(x_branch_id, "X-Branch-Id"),
    )
