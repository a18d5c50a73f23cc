"""
Reward catalog and claimed reward models.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lcf_auto.database import Base
from lcf_auto.models.loyalty import utcnow
import enum


class RewardCategory(str, enum.Enum):
    """Reward category enumeration."""
    DISCOUNT = "discount"
    SERVICE = "service"
    PRODUCT = "product"
    SPECIAL = "special"


class UserRewardStatus(str, enum.Enum):
    """Lifecycle of a claimed reward."""
    AVAILABLE = "available"
    USED = "used"
    EXPIRED = "expired"


class Reward(Base):
    """Reward that customers can buy with loyalty points."""

    __tablename__ = "rewards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    category = Column(SQLEnum(RewardCategory), default=RewardCategory.DISCOUNT, nullable=False)
    points_cost = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=True)  # None means unlimited
    is_active = Column(Boolean, default=True, nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class UserReward(Base):
    """A reward claimed by a user."""

    __tablename__ = "user_rewards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False)
    reward_name = Column(String, nullable=False)
    points_spent = Column(Integer, nullable=False)
    status = Column(SQLEnum(UserRewardStatus), default=UserRewardStatus.AVAILABLE, nullable=False)
    claimed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    reward = relationship("Reward")
