"""
Reward catalog and redemption.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lcf_auto.exceptions import (
    LoyaltyError,
    RewardNotFoundError,
    RewardUnavailableError,
    UserRewardNotFoundError,
)
from lcf_auto.models.reward import Reward, UserReward, UserRewardStatus
from lcf_auto.schemas.reward import RewardCreate, RewardUpdate
from lcf_auto.services.loyalty import deduct_points, get_loyalty_settings

logger = logging.getLogger(__name__)


def _is_expired(moment: Optional[datetime], now: datetime) -> bool:
    if moment is None:
        return False
    # SQLite hands back naive datetimes
    if moment.tzinfo is None:
        now = now.replace(tzinfo=None)
    return moment < now


async def get_active_rewards(db: AsyncSession) -> List[Reward]:
    """Active rewards, cheapest first."""
    result = await db.execute(
        select(Reward).where(Reward.is_active.is_(True)).order_by(Reward.points_cost.asc(), Reward.id)
    )
    return list(result.scalars().all())


async def get_all_rewards(db: AsyncSession) -> List[Reward]:
    result = await db.execute(select(Reward).order_by(Reward.created_at.desc(), Reward.id.desc()))
    return list(result.scalars().all())


async def get_reward(db: AsyncSession, reward_id: int) -> Reward:
    reward = await db.get(Reward, reward_id)
    if reward is None:
        raise RewardNotFoundError()
    return reward


async def create_reward(db: AsyncSession, reward: RewardCreate) -> Reward:
    db_reward = Reward(**reward.model_dump())
    db.add(db_reward)
    await db.commit()
    await db.refresh(db_reward)

    logger.info("Reward #%s created: %s (%s points)", db_reward.id, db_reward.name, db_reward.points_cost)
    return db_reward


async def update_reward(db: AsyncSession, reward_id: int, reward_update: RewardUpdate) -> Reward:
    db_reward = await get_reward(db, reward_id)

    # Update only provided fields; null cannot clear a required column
    update_data = reward_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and not Reward.__table__.c[field].nullable:
            continue
        setattr(db_reward, field, value)

    await db.commit()
    await db.refresh(db_reward)
    return db_reward


async def claim_reward(db: AsyncSession, user_id: int, reward_id: int) -> UserReward:
    """
    Exchange points for a reward.

    Stock, balance, ledger entry and claimed reward are written in a single
    database transaction. The balance must cover both the reward cost and the
    program's redemption minimum.
    """
    now = datetime.now(timezone.utc)
    settings = await get_loyalty_settings(db)

    try:
        reward = await db.get(Reward, reward_id, populate_existing=True)
        if reward is None:
            raise RewardNotFoundError()
        if not reward.is_active:
            raise RewardUnavailableError("Reward is not active")
        if _is_expired(reward.valid_until, now):
            raise RewardUnavailableError("Reward has expired")

        if reward.stock is not None:
            result = await db.execute(
                update(Reward)
                .where(Reward.id == reward_id, Reward.stock > 0)
                .values(stock=Reward.stock - 1)
            )
            if result.rowcount == 0:
                raise RewardUnavailableError("Reward is out of stock")

        await deduct_points(
            db,
            user_id,
            reward.points_cost,
            reward.id,
            f"Récompense échangée : {reward.name}",
            minimum_balance=settings.min_points_for_redemption,
        )

        user_reward = UserReward(
            user_id=user_id,
            reward_id=reward.id,
            reward_name=reward.name,
            points_spent=reward.points_cost,
            status=UserRewardStatus.AVAILABLE,
            claimed_at=now,
            expires_at=reward.valid_until,
        )
        db.add(user_reward)
        await db.commit()
    except LoyaltyError as e:
        await db.rollback()
        logger.warning("Reward #%s refused for user %s: %s", reward_id, user_id, e.message)
        raise
    except Exception:
        await db.rollback()
        logger.exception("Error claiming reward #%s for user %s", reward_id, user_id)
        raise

    logger.info("User %s claimed reward #%s (%s points)", user_id, reward_id, user_reward.points_spent)
    return user_reward


async def get_user_rewards(db: AsyncSession, user_id: int) -> List[UserReward]:
    """Rewards claimed by a user, newest first."""
    result = await db.execute(
        select(UserReward)
        .where(UserReward.user_id == user_id)
        .order_by(UserReward.claimed_at.desc(), UserReward.id.desc())
    )
    return list(result.scalars().all())


async def mark_reward_used(db: AsyncSession, user_reward_id: int) -> UserReward:
    user_reward = await db.get(UserReward, user_reward_id)
    if user_reward is None:
        raise UserRewardNotFoundError()

    user_reward.status = UserRewardStatus.USED
    user_reward.used_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Claimed reward #%s marked as used", user_reward_id)
    return user_reward
