"""Repositories - thin database access for the service layer.

Each repository wraps a SQLAlchemy session. Individual calls commit on their
own; nothing here spans a transaction across calls.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from hospital.models.appointment import Appointment
from hospital.models.audit_log import AuditLog
from hospital.models.doctor import Doctor
from hospital.models.patient import Patient
from hospital.models.user import User

APPOINTMENT_SORT_COLUMNS = {
    "appointment_time": Appointment.appointment_time,
    "status": Appointment.status,
    "doctor_id": Appointment.doctor_id,
    "patient_id": Appointment.patient_id,
}


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def count(self) -> int:
        return self.db.query(User).count()

    def list_page(self, offset: int, limit: int) -> list[User]:
        return (
            self.db.query(User)
            .order_by(User.created_at.asc(), User.email.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def save(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user


class PatientRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, patient_id: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()

    def get_by_user_id(self, user_id: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.user_id == user_id).first()

    def list_all(self) -> list[Patient]:
        return self.db.query(Patient).all()

    def list_by_ids(self, patient_ids: list[str]) -> list[Patient]:
        if not patient_ids:
            return []
        return self.db.query(Patient).filter(Patient.id.in_(patient_ids)).all()


class DoctorRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, doctor_id: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def get_by_user_id(self, user_id: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.user_id == user_id).first()

    def list_by_specialty(self, specialty: str) -> list[Doctor]:
        """Doctors of a specialty in storage order (no ORDER BY)."""
        return self.db.query(Doctor).filter(Doctor.specialty == specialty).all()


class AppointmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def list_by_doctor(self, doctor_id: str) -> list[Appointment]:
        return self.db.query(Appointment).filter(Appointment.doctor_id == doctor_id).all()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def save(self, appointment: Appointment) -> Appointment:
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def delete(self, appointment: Appointment) -> None:
        self.db.delete(appointment)
        self.db.commit()

    def search(
        self,
        *,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        status: Optional[str] = None,
        time_from: Optional[datetime] = None,
        time_to: Optional[datetime] = None,
        sort_by: str = "appointment_time",
        sort_dir: str = "asc",
    ) -> list[Appointment]:
        query = self.db.query(Appointment)

        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if status:
            query = query.filter(Appointment.status == status)
        if time_from is not None:
            query = query.filter(Appointment.appointment_time >= time_from)
        if time_to is not None:
            query = query.filter(Appointment.appointment_time <= time_to)

        column = APPOINTMENT_SORT_COLUMNS.get(sort_by, Appointment.appointment_time)
        ordering = column.desc() if sort_dir == "desc" else column.asc()
        if column is Appointment.appointment_time:
            return query.order_by(ordering).all()
        return query.order_by(ordering, Appointment.appointment_time.asc()).all()


class AuditRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, audit_id: str) -> Optional[AuditLog]:
        return self.db.query(AuditLog).filter(AuditLog.id == audit_id).first()

    def add(self, entry: AuditLog) -> AuditLog:
        self.db.add(entry)
        self.db.commit()
        return entry

    def search(
        self,
        *,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        time_from: Optional[datetime] = None,
        time_to: Optional[datetime] = None,
    ) -> list[AuditLog]:
        query = self.db.query(AuditLog)

        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if time_from is not None:
            query = query.filter(AuditLog.timestamp >= time_from)
        if time_to is not None:
            query = query.filter(AuditLog.timestamp <= time_to)

        return query.order_by(AuditLog.timestamp.desc()).all()
