"""
Authentication and account service: registration, login, profiles and roles.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from tablerewards.models.user import User, UserRole
from tablerewards.schemas.user import UserCreate, UserLogin, UserUpdate
from tablerewards.core.security import hash_password, verify_password, create_access_token
from tablerewards.core.logging import get_logger

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new customer with hashed password.
    Raises 409 if the email already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=user_data.email,
        name=user_data.name,
        hashed_password=hash_password(user_data.password),
        role=UserRole.CUSTOMER.value,
        points=0,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    await db.commit()

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[str, User]:
    """
    Check credentials and issue a JWT for the user.
    Raises 401 if credentials are invalid, 403 for deactivated accounts.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return token, user


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return user


async def update_profile(db: AsyncSession, user_id: int, data: UserUpdate) -> User:
    user = await get_user(db, user_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    await db.commit()
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def set_user_role(db: AsyncSession, user_id: int, role: UserRole) -> User:
    """Change a user's role. Takes effect on the user's next request."""
    user = await get_user(db, user_id)
    previous = user.role
    user.role = role.value
    await db.flush()
    await db.refresh(user)
    await db.commit()

    logger.info("user_role_changed", user_id=user.id, from_role=previous, to_role=user.role)
    return user
