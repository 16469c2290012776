"""Enumerations shared by the models and request schemas."""

import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class Specialty(str, enum.Enum):
    GENERAL_PRACTITIONER = "general_practitioner"
    CARDIOLOGIST = "cardiologist"
    DERMATOLOGIST = "dermatologist"
    NEUROLOGIST = "neurologist"
    PEDIATRICIAN = "pediatrician"
    ONCOLOGIST = "oncologist"
    ORTHOPEDIST = "orthopedist"
    PSYCHIATRIST = "psychiatrist"
    ENDOCRINOLOGIST = "endocrinologist"
    GYNECOLOGIST = "gynecologist"
    GASTROENTEROLOGIST = "gastroenterologist"


class AppointmentStatus(str, enum.Enum):
    """Scheduled appointments may be closed; completed is terminal."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class AuditAction(str, enum.Enum):
    USER = "user"
    PATIENT = "patient"
    DOCTOR = "doctor"
    APPOINTMENT = "appointment"
