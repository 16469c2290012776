"""Summary statistics over patients and appointments."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from hospital.core.exceptions import InvalidArgumentError
from hospital.core.utils import to_naive_utc, utcnow
from hospital.models.patient import Patient
from hospital.repositories import AppointmentRepository, PatientRepository

DAYS_PER_YEAR = 365.2425


@dataclass(frozen=True)
class ReportResult:
    total_patients: int
    total_appointments: int
    average_age: float
    generated_at: datetime


def age_in_years(birth_date: date, now: datetime) -> float:
    return (now - datetime.combine(birth_date, datetime.min.time())) / timedelta(days=1) / DAYS_PER_YEAR


class ReportService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.patients = PatientRepository(db)
        self.appointments = AppointmentRepository(db)

    def generate(
        self,
        *,
        time_from: Optional[datetime] = None,
        time_to: Optional[datetime] = None,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
    ) -> ReportResult:
        """Count patients and appointments and average patient age.

        Without filters every patient and appointment counts. With filters the
        appointments are searched and the patients are the requested one, or
        else the distinct patients of the matching appointments. Patients with
        no birth date are counted but left out of the average.
        """
        if time_from is not None:
            time_from = to_naive_utc(time_from)
        if time_to is not None:
            time_to = to_naive_utc(time_to)
        if time_from is not None and time_to is not None and time_from > time_to:
            raise InvalidArgumentError("From cannot be greater than To.")

        now = self.clock()
        appointments = self.appointments.search(
            patient_id=patient_id,
            doctor_id=doctor_id,
            time_from=time_from,
            time_to=time_to,
        )

        if not any((time_from, time_to, doctor_id, patient_id)):
            patients = self.patients.list_all()
        elif patient_id:
            patient = self.patients.get_by_id(patient_id)
            patients = [patient] if patient is not None else []
        else:
            patient_ids = sorted({appointment.patient_id for appointment in appointments})
            patients = self.patients.list_by_ids(patient_ids)

        return ReportResult(
            total_patients=len(patients),
            total_appointments=len(appointments),
            average_age=_average_age(patients, now),
            generated_at=now,
        )


def _average_age(patients: list[Patient], now: datetime) -> float:
    ages = [age_in_years(patient.birth_date, now) for patient in patients if patient.birth_date is not None]
    if not ages:
        return 0.0
    return round(sum(ages) / len(ages), 2)
