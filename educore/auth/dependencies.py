from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.models import Role, User
from educore.auth.schemas import CurrentUser
from educore.core.config import settings
from educore.db.session import get_db


# Tokens are issued outside this service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def _optional_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    return UUID(value)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their permissions from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    role_name = payload.get("role")
    if not user_id_str or not role_name:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        school_id = _optional_uuid(payload.get("school_id"))
        branch_id = _optional_uuid(payload.get("branch_id"))
    except ValueError:
        raise credentials_exception

    if school_id is None and role_name != "SUPER_ADMIN":
        raise credentials_exception

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user or user.status != "ACTIVE":
        raise credentials_exception
    if school_id is not None and user.school_id is not None and user.school_id != school_id:
        raise credentials_exception

    # Load role permissions (school-scoped)
    permissions: Dict[str, Dict[str, bool]] = {}
    if school_id is not None:
        role_stmt = select(Role).where(Role.school_id == school_id, Role.name == role_name)
        role = (await db.execute(role_stmt)).scalar_one_or_none()
        if role and role.permissions:
            permissions = role.permissions  # type: ignore[assignment]

    return CurrentUser(
        id=user.id,
        school_id=school_id,
        branch_id=branch_id,
        role=role_name,
        permissions=permissions or {},
    )
