"""
Pydantic schemas for request/response validation.
"""
from lcf_auto.schemas.user import UserBase, UserCreate, User, Token, LoginRequest
from lcf_auto.schemas.loyalty import (
    LoyaltySettings, LoyaltySettingsUpdate, LoyaltyTransaction, LoyaltyBalance,
    PointsAdjustment, Member, ReconciliationResult,
)
from lcf_auto.schemas.reward import RewardBase, RewardCreate, RewardUpdate, Reward, UserReward
from lcf_auto.schemas.appointment import AppointmentBase, AppointmentCreate, AppointmentUpdate, Appointment
from lcf_auto.schemas.revenue import RevenueSummary, MonthlyRevenue, FiscalDeclaration

__all__ = [
    "UserBase", "UserCreate", "User", "Token", "LoginRequest",
    "LoyaltySettings", "LoyaltySettingsUpdate", "LoyaltyTransaction", "LoyaltyBalance",
    "PointsAdjustment", "Member", "ReconciliationResult",
    "RewardBase", "RewardCreate", "RewardUpdate", "Reward", "UserReward",
    "AppointmentBase", "AppointmentCreate", "AppointmentUpdate", "Appointment",
    "RevenueSummary", "MonthlyRevenue", "FiscalDeclaration",
]
