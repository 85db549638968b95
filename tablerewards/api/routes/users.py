"""
User profile and role management endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.security import get_current_actor
from tablerewards.db.session import get_db
from tablerewards.schemas.user import UserResponse, UserRoleUpdate, UserUpdate
from tablerewards.services.access_service import Actor, require_admin
from tablerewards.services.auth_service import get_user, list_users, set_user_role, update_profile

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def read_profile(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, actor.user_id)


@router.patch("/me", response_model=UserResponse)
async def update_own_profile(
    data: UserUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await update_profile(db, actor.user_id, data)


@router.get("/", response_model=list[UserResponse])
async def list_users_endpoint(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """All accounts, newest first. Admins only."""
    require_admin(actor)
    return await list_users(db)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Promote or demote a user. Admins only."""
    require_admin(actor)
    return await set_user_role(db, user_id, data.role)
