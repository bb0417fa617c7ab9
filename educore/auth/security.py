from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
from jose import jwt

from educore.core.config import settings


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def create_access_token(
    *, subject: Dict, expires_minutes: Optional[int] = None
) -> str:
    """Sign {user_id, school_id?, branch_id?, role}. UUID values are stringified."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    to_encode = {k: (str(v) if v is not None else None) for k, v in subject.items()}
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
