"""
SQLAlchemy database models.
"""
from lcf_auto.models.user import User
from lcf_auto.models.loyalty import LoyaltyTransaction, LoyaltySettings
from lcf_auto.models.reward import Reward, UserReward
from lcf_auto.models.appointment import Appointment

__all__ = ["User", "LoyaltyTransaction", "LoyaltySettings", "Reward", "UserReward", "Appointment"]
