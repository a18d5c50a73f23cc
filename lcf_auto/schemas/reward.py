"""
Pydantic schemas for Reward.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from lcf_auto.models.reward import RewardCategory, UserRewardStatus


class RewardBase(BaseModel):
    """Base reward schema with common fields."""
    name: str
    description: str = ""
    category: RewardCategory = RewardCategory.DISCOUNT
    points_cost: int
    stock: Optional[int] = None
    is_active: bool = True
    valid_until: Optional[datetime] = None


class RewardCreate(RewardBase):
    """Schema for creating a reward."""
    pass


class RewardUpdate(BaseModel):
    """Schema for updating a reward."""
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[RewardCategory] = None
    points_cost: Optional[int] = None
    stock: Optional[int] = None
    is_active: Optional[bool] = None
    valid_until: Optional[datetime] = None


class Reward(RewardBase):
    """Schema for reward responses."""
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserReward(BaseModel):
    """Schema for claimed reward responses."""
    id: int
    user_id: int
    reward_id: int
    reward_name: str
    points_spent: int
    status: UserRewardStatus
    claimed_at: datetime
    used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
