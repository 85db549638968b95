"""
Pydantic schemas for the loyalty ledger.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RewardResponse(BaseModel):
    id: int
    user_id: int
    booking_id: Optional[int]
    points_change: int
    reason: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardSummaryResponse(BaseModel):
    total_points: int
    monthly_points: int
    total_rewards: int
    recent_rewards: list[RewardResponse]
