"""Appointment model definitions."""

import enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from autofix.database import Base


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def make_slot_key(appointment_date, start_minute: int) -> str:
    return f"{appointment_date.isoformat()}#{start_minute}"


class Appointment(Base):
    """A booked service for one client's vehicle.

    slot_key is unique while the appointment occupies time and cleared on
    cancellation, so the database refuses two live bookings starting at the
    same minute of the same day.
    """
    __tablename__ = "appointments"

    id = Column(String, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    service_name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=False)
    vehicle_make = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    vehicle_plate = Column(String, nullable=True)
    status = Column(String, nullable=False, default=AppointmentStatus.CONFIRMED.value)
    slot_key = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, nullable=False)
