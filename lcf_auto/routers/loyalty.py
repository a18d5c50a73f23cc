"""
Loyalty program routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from lcf_auto.config import get_settings
from lcf_auto.database import get_db
from lcf_auto.models.user import User
from lcf_auto.schemas.loyalty import (
    LoyaltyBalance,
    LoyaltySettings,
    LoyaltySettingsUpdate,
    LoyaltyTransaction,
    Member,
    PointsAdjustment,
    ReconciliationResult,
)
from lcf_auto.auth import get_current_active_user, get_current_admin
from lcf_auto.services import loyalty as loyalty_service

settings = get_settings()

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("/me", response_model=LoyaltyBalance)
async def get_my_balance(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Current balance of the authenticated user with the program rules.
    """
    user_id = current_user.id
    return LoyaltyBalance(
        user_id=user_id,
        loyalty_points=await loyalty_service.get_user_points(db, user_id),
        settings=await loyalty_service.get_loyalty_settings(db),
    )


@router.get("/me/transactions", response_model=List[LoyaltyTransaction])
async def get_my_transactions(
    skip: int = 0,
    limit: int = Query(settings.default_history_limit, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Points history of the authenticated user, most recent first.
    """
    return await loyalty_service.get_user_transactions(db, current_user.id, limit=limit, offset=skip)


@router.get("/settings", response_model=LoyaltySettings)
async def read_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return await loyalty_service.get_loyalty_settings(db)


@router.put("/settings", response_model=LoyaltySettings)
async def update_settings(
    settings_update: LoyaltySettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Merge the provided fields into the program settings.
    """
    return await loyalty_service.update_loyalty_settings(db, settings_update)


@router.get("/users", response_model=List[Member])
async def get_members(
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Customers and their balances, optionally filtered by name or email.
    """
    return await loyalty_service.list_members(db, search)


@router.get("/users/{user_id}/transactions", response_model=List[LoyaltyTransaction])
async def get_member_transactions(
    user_id: int,
    skip: int = 0,
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await loyalty_service.get_user_transactions(db, user_id, limit=limit, offset=skip)


@router.post("/users/{user_id}/adjust", response_model=LoyaltyBalance)
async def adjust_member_points(
    user_id: int,
    adjustment: PointsAdjustment,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Credit or debit points manually.
    """
    admin_id = current_admin.id
    await loyalty_service.adjust_points(
        db, user_id, adjustment.points, adjustment.description, admin_id=admin_id
    )
    return LoyaltyBalance(
        user_id=user_id,
        loyalty_points=await loyalty_service.get_user_points(db, user_id),
        settings=await loyalty_service.get_loyalty_settings(db),
    )


@router.post("/users/{user_id}/reconcile", response_model=ReconciliationResult)
async def reconcile_member_balance(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Recompute the stored balance from the ledger.
    """
    previous, ledger_balance = await loyalty_service.reconcile_balance(db, user_id)
    return ReconciliationResult(
        user_id=user_id,
        previous_balance=previous,
        ledger_balance=ledger_balance,
        corrected=previous != ledger_balance,
    )


@router.post("/reconcile", response_model=List[ReconciliationResult])
async def reconcile_all_member_balances(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Recompute every stored balance from the ledger and report the corrections.
    """
    corrections = await loyalty_service.reconcile_all_balances(db)
    return [
        ReconciliationResult(
            user_id=user_id,
            previous_balance=previous,
            ledger_balance=ledger_balance,
            corrected=True,
        )
        for user_id, (previous, ledger_balance) in corrections.items()
    ]
