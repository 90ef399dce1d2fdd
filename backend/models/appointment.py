"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class Appointment(Base):
    """Represents a patient booking."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_name = Column(String, nullable=False)
    patient_email = Column(String, nullable=False)
    patient_phone = Column(String, nullable=False)
    appointment_date = Column(DateTime, nullable=False)
    appointment_time = Column(String, nullable=False)  # HH:MM
    service = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    notes = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
