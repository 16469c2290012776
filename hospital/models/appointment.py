"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, String

from hospital.database import Base
from hospital.models.enums import AppointmentStatus


class Appointment(Base):
    """Represents a scheduled appointment."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False)
    appointment_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    notes = Column(String)
    doctor_notes = Column(String)
    created_at = Column(DateTime, nullable=False)
