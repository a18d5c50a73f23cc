"""
Pydantic schemas for revenue reports.
"""
from pydantic import BaseModel
from datetime import datetime
from typing import List
from lcf_auto.schemas.appointment import Appointment
from lcf_auto.services.revenue import RevenuePeriod


class RevenueSummary(BaseModel):
    period: RevenuePeriod
    start_date: datetime
    end_date: datetime
    total_revenue: float
    completed_appointments: int
    appointments: List[Appointment]


class MonthlyRevenue(BaseModel):
    month: int
    revenue: float
    count: int


class FiscalDeclaration(BaseModel):
    fiscal_year: int
    total_revenue: float
    total_appointments: int
    monthly_breakdown: List[MonthlyRevenue]
    generated_at: datetime
