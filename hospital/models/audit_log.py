"""Audit log model definitions."""

from sqlalchemy import Column, DateTime, String, Text

from hospital.core.utils import utcnow
from hospital.database import Base


class AuditLog(Base):
    """One audited action. ``user_id`` is empty for anonymous events such as login attempts."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), index=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)
    action = Column(String, nullable=False)
    details = Column(Text, nullable=False, default="")
