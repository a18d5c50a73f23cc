"""
Appointment model for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lcf_auto.database import Base
import enum


class AppointmentStatus(str, enum.Enum):
    """Appointment status enumeration."""
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceType(str, enum.Enum):
    """Workshop service offered by the garage."""
    ENTRETIEN = "entretien"
    REPARATION = "reparation"
    REPROGRAMMATION = "reprogrammation"


class Appointment(Base):
    """Appointment database model."""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    service_type = Column(SQLEnum(ServiceType), nullable=False)
    date_time = Column(DateTime(timezone=True), nullable=False, index=True)
    vehicle_make = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    vehicle_plate = Column(String, nullable=False)
    customer_notes = Column(String, nullable=True)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.CONFIRMED, nullable=False)
    amount = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="appointments")
