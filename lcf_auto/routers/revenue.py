"""
Revenue report routes.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from lcf_auto.database import get_db
from lcf_auto.models.user import User
from lcf_auto.schemas.revenue import FiscalDeclaration, MonthlyRevenue, RevenueSummary
from lcf_auto.auth import get_current_admin
from lcf_auto.services import revenue as revenue_service
from lcf_auto.services.revenue import RevenuePeriod

router = APIRouter(prefix="/revenue", tags=["revenue"])


@router.get("/summary", response_model=RevenueSummary)
async def get_revenue_summary(
    period: RevenuePeriod = RevenuePeriod.MONTHLY,
    reference: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Revenue of completed appointments for the period containing the reference date.
    """
    return await revenue_service.get_revenue_summary(db, period, reference)


@router.get("/breakdown/{year}", response_model=List[MonthlyRevenue])
async def get_monthly_breakdown(
    year: int,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await revenue_service.get_monthly_revenue_breakdown(db, year)


@router.get("/fiscal-declaration/{year}", response_model=FiscalDeclaration)
async def get_fiscal_declaration(
    year: int,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Yearly totals and monthly breakdown for the tax declaration.
    """
    return await revenue_service.generate_fiscal_declaration(db, year)
