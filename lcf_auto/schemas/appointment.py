"""
Pydantic schemas for Appointment.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from lcf_auto.models.appointment import AppointmentStatus, ServiceType


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""
    customer_name: str
    service_type: ServiceType
    date_time: datetime
    vehicle_make: str
    vehicle_model: str
    vehicle_plate: str
    customer_notes: Optional[str] = None


class AppointmentCreate(AppointmentBase):
    """Schema for booking an appointment."""
    pass


class AppointmentUpdate(BaseModel):
    """Schema for updating an appointment."""
    customer_name: Optional[str] = None
    service_type: Optional[ServiceType] = None
    date_time: Optional[datetime] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_plate: Optional[str] = None
    customer_notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    amount: Optional[float] = None


class Appointment(AppointmentBase):
    """Schema for appointment responses."""
    id: int
    user_id: int
    status: AppointmentStatus
    amount: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
