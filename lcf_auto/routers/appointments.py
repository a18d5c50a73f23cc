"""
Appointment routes.
"""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from lcf_auto.database import get_db
from lcf_auto.exceptions import AppointmentNotModifiableError, SlotUnavailableError
from lcf_auto.models.appointment import Appointment, AppointmentStatus
from lcf_auto.models.user import User, UserRole
from lcf_auto.schemas.appointment import (
    Appointment as AppointmentSchema,
    AppointmentCreate,
    AppointmentUpdate,
)
from lcf_auto.auth import get_current_active_user, get_current_admin
from lcf_auto.services.loyalty import award_appointment_points

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

# Customers may cancel up to this long before the appointment
MODIFICATION_NOTICE = timedelta(hours=24)


def can_modify_appointment(date_time: datetime, now: Optional[datetime] = None) -> bool:
    """True when the appointment is more than 24 hours away."""
    now = now or datetime.now(timezone.utc)
    # SQLite hands back naive datetimes
    if date_time.tzinfo is None:
        now = now.replace(tzinfo=None)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return date_time - now > MODIFICATION_NOTICE


async def _ensure_slot_available(
    db: AsyncSession, date_time: datetime, exclude_id: Optional[int] = None
) -> None:
    """Refuse a time slot already held by a confirmed appointment."""
    query = select(Appointment.id).where(
        Appointment.date_time == date_time,
        Appointment.status == AppointmentStatus.CONFIRMED,
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)

    if await db.scalar(query.limit(1)) is not None:
        raise SlotUnavailableError()


async def _get_visible_appointment(db: AsyncSession, appointment_id: int, current_user: User) -> Appointment:
    result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
    appointment = result.scalar_one_or_none()

    if not appointment or (
        current_user.role != UserRole.ADMIN and appointment.user_id != current_user.id
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )

    return appointment


@router.get("/", response_model=List[AppointmentSchema])
async def get_appointments(
    skip: int = 0,
    limit: int = 100,
    status_filter: Optional[AppointmentStatus] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Get appointments with pagination and optional status filter.
    Customers only see their own appointments.
    """
    query = select(Appointment)

    if current_user.role != UserRole.ADMIN:
        query = query.where(Appointment.user_id == current_user.id)
    if status_filter:
        query = query.where(Appointment.status == status_filter)

    result = await db.execute(
        query.order_by(Appointment.date_time.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all()


@router.get("/{appointment_id}", response_model=AppointmentSchema)
async def get_appointment(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Get a specific appointment by ID.
    """
    return await _get_visible_appointment(db, appointment_id, current_user)


@router.post("/", response_model=AppointmentSchema, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Book an appointment for the authenticated user.
    A slot already taken by a confirmed appointment is refused.
    """
    await _ensure_slot_available(db, appointment.date_time)

    db_appointment = Appointment(**appointment.model_dump(), user_id=current_user.id)
    db.add(db_appointment)
    await db.commit()
    await db.refresh(db_appointment)

    logger.info("Appointment #%s booked for %s", db_appointment.id, db_appointment.date_time)
    return db_appointment


@router.post("/{appointment_id}/cancel", response_model=AppointmentSchema)
async def cancel_appointment(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Cancel a confirmed appointment.
    Customers must cancel more than 24 hours in advance; admins may cancel any time.
    """
    db_appointment = await _get_visible_appointment(db, appointment_id, current_user)

    if db_appointment.status != AppointmentStatus.CONFIRMED:
        raise AppointmentNotModifiableError("Only confirmed appointments can be cancelled")
    if current_user.role != UserRole.ADMIN and not can_modify_appointment(db_appointment.date_time):
        raise AppointmentNotModifiableError()

    db_appointment.status = AppointmentStatus.CANCELLED
    await db.commit()
    await db.refresh(db_appointment)

    logger.info("Appointment #%s cancelled", appointment_id)
    return db_appointment


@router.put("/{appointment_id}", response_model=AppointmentSchema)
async def update_appointment(
    appointment_id: int,
    appointment_update: AppointmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Update an appointment.
    Moving it to completed credits the customer's loyalty points.
    """
    result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
    db_appointment = result.scalar_one_or_none()

    if not db_appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )

    previous_status = db_appointment.status

    # Update only provided fields; null cannot clear a required column
    update_data = appointment_update.model_dump(exclude_unset=True)
    update_data = {
        field: value
        for field, value in update_data.items()
        if value is not None or Appointment.__table__.c[field].nullable
    }

    new_status = update_data.get("status", db_appointment.status)
    if new_status == AppointmentStatus.CONFIRMED and (
        "date_time" in update_data or previous_status != AppointmentStatus.CONFIRMED
    ):
        await _ensure_slot_available(
            db, update_data.get("date_time", db_appointment.date_time), exclude_id=appointment_id
        )

    for field, value in update_data.items():
        setattr(db_appointment, field, value)

    await db.commit()
    await db.refresh(db_appointment)

    if previous_status != AppointmentStatus.COMPLETED and db_appointment.status == AppointmentStatus.COMPLETED:
        try:
            await award_appointment_points(db, db_appointment.user_id, db_appointment.id)
        except Exception:
            logger.exception("Error awarding points for appointment %s", appointment_id)
            await db.refresh(db_appointment)

    return db_appointment
