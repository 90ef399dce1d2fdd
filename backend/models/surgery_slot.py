"""Doctor unavailability model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class SurgerySlot(Base):
    """Represents a window in which the doctor cannot take bookings."""
    __tablename__ = "surgery_slots"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    description = Column(String)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
