"""
Loyalty ledger endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.security import get_current_actor
from tablerewards.db.session import get_db
from tablerewards.schemas.reward import RewardResponse, RewardSummaryResponse
from tablerewards.services.access_service import Actor
from tablerewards.services.reward_service import get_rewards_summary, list_rewards

router = APIRouter(prefix="/rewards", tags=["Rewards"])


@router.get("/", response_model=list[RewardResponse])
async def list_rewards_endpoint(
    user_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Ledger entries, newest first.
    Customers see their own; admins see everyone's or filter by `user_id`.
    """
    if not actor.is_admin:
        user_id = actor.user_id
    return await list_rewards(db, user_id)


@router.get("/summary", response_model=RewardSummaryResponse)
async def rewards_summary(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Point balance, points earned this month and the latest entries."""
    return await get_rewards_summary(db, actor.user_id)
