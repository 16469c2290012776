"""Patient model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, String

from hospital.core.utils import utcnow
from hospital.database import Base


class Patient(Base):
    """Patient profile linked one-to-one with a user account."""
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    birth_date = Column(Date)
    phone = Column(String)
    email = Column(String)
    created_at = Column(DateTime, default=utcnow, nullable=False)
