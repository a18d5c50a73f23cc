"""
Reward catalog and redemption routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from lcf_auto.database import get_db
from lcf_auto.models.user import User
from lcf_auto.schemas.reward import Reward as RewardSchema, RewardCreate, RewardUpdate, UserReward
from lcf_auto.auth import get_current_active_user, get_current_admin
from lcf_auto.services import rewards as rewards_service

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/", response_model=List[RewardSchema])
async def get_rewards(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Get active rewards, cheapest first.
    """
    return await rewards_service.get_active_rewards(db)


@router.get("/all", response_model=List[RewardSchema])
async def get_all_rewards(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Get every reward including inactive ones.
    """
    return await rewards_service.get_all_rewards(db)


@router.get("/me", response_model=List[UserReward])
async def get_my_rewards(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Rewards claimed by the authenticated user.
    """
    return await rewards_service.get_user_rewards(db, current_user.id)


@router.post("/", response_model=RewardSchema, status_code=status.HTTP_201_CREATED)
async def create_reward(
    reward: RewardCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await rewards_service.create_reward(db, reward)


@router.put("/{reward_id}", response_model=RewardSchema)
async def update_reward(
    reward_id: int,
    reward_update: RewardUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Update a reward. Only provided fields change.
    """
    return await rewards_service.update_reward(db, reward_id, reward_update)


@router.post("/{reward_id}/claim", response_model=UserReward, status_code=status.HTTP_201_CREATED)
async def claim_reward(
    reward_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Exchange loyalty points for a reward.
    """
    return await rewards_service.claim_reward(db, current_user.id, reward_id)


@router.post("/claimed/{user_reward_id}/use", response_model=UserReward)
async def use_claimed_reward(
    user_reward_id: int,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Mark a claimed reward as used at the workshop.
    """
    return await rewards_service.mark_reward_used(db, user_reward_id)
