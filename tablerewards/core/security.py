"""
Password hashing, JWT issuance and caller resolution.

`get_current_actor` is the only place a request's identity is derived from
the bearer token. It loads the user so that role changes take effect without
reissuing tokens, and hands an explicit Actor to the route.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.config import get_settings
from tablerewards.db.session import get_db
from tablerewards.models.user import User
from tablerewards.services.access_service import Actor

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_user_id(token: str) -> int:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid or expired token")


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user_id = decode_user_id(credentials.credentials)
    result = await db.execute(select(User.id, User.role, User.is_active).where(User.id == user_id))
    row = result.one_or_none()
    if row is None or not row.is_active:
        raise _unauthorized("User not found or inactive")

    return Actor(user_id=row.id, role=row.role)
