from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC and tenant checks.
    school_id and branch_id are the values bound in the access token.
    """

    id: UUID
    school_id: Optional[UUID] = None  # None only for SUPER_ADMIN
    branch_id: Optional[UUID] = None
    role: str
    permissions: Dict[str, Dict[str, bool]]
