"""
Pydantic schemas for the loyalty program.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from lcf_auto.models.loyalty import LoyaltyTransactionType


class LoyaltySettings(BaseModel):
    """Program configuration passed to the award triggers."""
    points_per_appointment: int = 10
    min_points_for_redemption: int = 100
    welcome_bonus_points: Optional[int] = None
    birthday_bonus_points: Optional[int] = None
    referral_bonus_points: Optional[int] = None
    points_per_euro_spent: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class LoyaltySettingsUpdate(BaseModel):
    """Partial update of the settings. Only provided fields are merged."""
    points_per_appointment: Optional[int] = None
    min_points_for_redemption: Optional[int] = None
    welcome_bonus_points: Optional[int] = None
    birthday_bonus_points: Optional[int] = None
    referral_bonus_points: Optional[int] = None
    points_per_euro_spent: Optional[float] = None


class LoyaltyTransaction(BaseModel):
    """Schema for ledger entry responses."""
    id: int
    user_id: int
    type: LoyaltyTransactionType
    points: int
    description: str
    related_appointment_id: Optional[int] = None
    related_reward_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PointsAdjustment(BaseModel):
    """Manual adjustment made by an administrator."""
    points: int
    description: Optional[str] = None


class LoyaltyBalance(BaseModel):
    """Current balance of a user together with the program rules."""
    user_id: int
    loyalty_points: int
    settings: LoyaltySettings


class Member(BaseModel):
    """User row in the admin loyalty listing."""
    id: int
    email: str
    first_name: str
    last_name: str
    loyalty_points: int

    model_config = ConfigDict(from_attributes=True)


class ReconciliationResult(BaseModel):
    user_id: int
    previous_balance: int
    ledger_balance: int
    corrected: bool
