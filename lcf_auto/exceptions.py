"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; services never raise
HTTPException themselves.
"""
from typing import Optional


class LoyaltyError(Exception):
    """Base class for every business error of the application."""

    message = "Loyalty operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class StoreNotConfiguredError(LoyaltyError):
    message = "Database not configured"


class UserNotFoundError(LoyaltyError):
    message = "User not found"


class InsufficientPointsError(LoyaltyError):
    message = "Insufficient loyalty points"


class RewardNotFoundError(LoyaltyError):
    message = "Reward not found"


class RewardUnavailableError(LoyaltyError):
    message = "Reward is not available"


class UserRewardNotFoundError(LoyaltyError):
    message = "Claimed reward not found"


class InvalidPeriodError(LoyaltyError):
    message = "Unknown revenue period"


class InvalidPointsError(LoyaltyError):
    message = "Points must be different from 0"


class SlotUnavailableError(LoyaltyError):
    message = "This time slot is no longer available"


class AppointmentNotModifiableError(LoyaltyError):
    message = "Appointments can only be changed more than 24 hours in advance"
