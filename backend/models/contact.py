"""Contact model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from backend.database import Base


class Contact(Base):
    """Represents a patient inquiry submitted through the public contact form."""
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="new")
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
