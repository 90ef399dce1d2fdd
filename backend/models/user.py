"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class User(Base):
    """Represents an administrative user of the clinic dashboard."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="admin")  # admin/staff
    created_at = Column(DateTime, nullable=False, default=datetime.now)
