"""
Revenue aggregation over completed appointments.

The fiscal year is the calendar year (1 January to 31 December).
"""
import calendar
import enum
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lcf_auto.exceptions import InvalidPeriodError
from lcf_auto.models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


class RevenuePeriod(str, enum.Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"
    FISCAL = "fiscal"


def _month_bounds(year: int, month: int, tzinfo=None) -> Tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=tzinfo)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=tzinfo)
    return start, end


def _year_bounds(year: int, tzinfo=None) -> Tuple[datetime, datetime]:
    return datetime(year, 1, 1, tzinfo=tzinfo), datetime(year, 12, 31, 23, 59, 59, 999999, tzinfo=tzinfo)


def get_period_dates(period, reference: datetime) -> Tuple[datetime, datetime]:
    """Inclusive start and end of the period containing ``reference``."""
    try:
        period = RevenuePeriod(period)
    except ValueError:
        raise InvalidPeriodError(f"Unknown period: {period}")

    if period == RevenuePeriod.MONTHLY:
        return _month_bounds(reference.year, reference.month, reference.tzinfo)
    # Annual and fiscal share the calendar year
    return _year_bounds(reference.year, reference.tzinfo)


async def _completed_appointments(
    db: AsyncSession, start: datetime, end: datetime
) -> List[Appointment]:
    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.date_time >= start,
            Appointment.date_time <= end,
            Appointment.status == AppointmentStatus.COMPLETED,
        )
        .order_by(Appointment.date_time.desc())
    )
    return list(result.scalars().all())


def _total(appointments: List[Appointment]) -> float:
    return sum(appointment.amount or 0 for appointment in appointments)


async def get_revenue_summary(
    db: AsyncSession, period, reference: Optional[datetime] = None
) -> Dict[str, Any]:
    reference = reference or datetime.now()
    start_date, end_date = get_period_dates(period, reference)

    appointments = await _completed_appointments(db, start_date, end_date)

    return {
        "period": RevenuePeriod(period),
        "start_date": start_date,
        "end_date": end_date,
        "total_revenue": _total(appointments),
        "completed_appointments": len(appointments),
        "appointments": appointments,
    }


async def get_monthly_revenue_breakdown(db: AsyncSession, year: int) -> List[Dict[str, Any]]:
    """Revenue and completed appointment count for each month (1-12) of a year."""
    breakdown = []
    for month in range(1, 13):
        start, end = _month_bounds(year, month)
        appointments = await _completed_appointments(db, start, end)
        breakdown.append({"month": month, "revenue": _total(appointments), "count": len(appointments)})
    return breakdown


async def generate_fiscal_declaration(db: AsyncSession, year: int) -> Dict[str, Any]:
    """
    Yearly summary used for the tax declaration.
    """
    monthly_breakdown = await get_monthly_revenue_breakdown(db, year)
    declaration = {
        "fiscal_year": year,
        "total_revenue": sum(item["revenue"] for item in monthly_breakdown),
        "total_appointments": sum(item["count"] for item in monthly_breakdown),
        "monthly_breakdown": monthly_breakdown,
        "generated_at": datetime.now(),
    }
    logger.info(
        "Fiscal declaration generated for %s: %s appointments, %.2f EUR",
        year, declaration["total_appointments"], declaration["total_revenue"],
    )
    return declaration
