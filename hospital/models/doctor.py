"""Doctor model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, String

from hospital.core.utils import utcnow
from hospital.database import Base
from hospital.models.enums import Specialty


class Doctor(Base):
    """Doctor profile linked one-to-one with a user account."""
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    birth_date = Column(Date)
    phone = Column(String)
    email = Column(String)
    specialty = Column(String, nullable=False, default=Specialty.GENERAL_PRACTITIONER.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)
