"""
Loyalty ledger and program settings models.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lcf_auto.database import Base
import enum


SETTINGS_ID = "default"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoyaltyTransactionType(str, enum.Enum):
    """Kind of ledger entry."""
    APPOINTMENT_COMPLETED = "appointment_completed"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    REWARD_REDEMPTION = "reward_redemption"
    BONUS = "bonus"


class LoyaltyTransaction(Base):
    """Append-only ledger entry. Never updated or deleted once written."""

    __tablename__ = "loyalty_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(LoyaltyTransactionType), nullable=False)
    points = Column(Integer, nullable=False)
    description = Column(String, nullable=False, default="")
    related_appointment_id = Column(Integer, nullable=True)
    related_reward_id = Column(Integer, nullable=True)
    created_by = Column(Integer, nullable=True)
    idempotency_key = Column(String, unique=True, nullable=True)
    # Set client-side for sub-second ordering of history
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="loyalty_transactions")


class LoyaltySettings(Base):
    """Program configuration. A single row keyed by SETTINGS_ID."""

    __tablename__ = "loyalty_settings"

    id = Column(String, primary_key=True, default=SETTINGS_ID)
    points_per_appointment = Column(Integer, nullable=False, default=10)
    min_points_for_redemption = Column(Integer, nullable=False, default=100)
    welcome_bonus_points = Column(Integer, nullable=True)
    birthday_bonus_points = Column(Integer, nullable=True)
    referral_bonus_points = Column(Integer, nullable=True)
    points_per_euro_spent = Column(Float, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
