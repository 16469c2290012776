"""User model definitions."""

from sqlalchemy import Boolean, Column, DateTime, String

from hospital.core.utils import utcnow
from hospital.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False)  # admin/doctor/patient
    is_blocked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
