"""
Sign-up and sign-in for diners and restaurant staff.

Everyone registers as a customer; staff roles are granted afterwards by an
admin (see routes.users). Login returns the bearer token together with the
caller's profile, so clients get the role and points balance in one call.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.config import get_settings
from tablerewards.db.session import get_db
from tablerewards.schemas.user import Token, UserCreate, UserLogin, UserResponse
from tablerewards.services.auth_service import authenticate_user, register_user

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Create a customer account with a zero points balance. 409 if the email is taken."""
    return await register_user(db, user_data)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    token, user = await authenticate_user(db, login_data)
    return {
        "access_token": token,
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": user,
    }
