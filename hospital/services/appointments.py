"""Appointment service - booking, update and close-out of appointments."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from hospital.core.config import AppointmentSettings
from hospital.core.exceptions import ConflictError, InvalidArgumentError, InvalidOperationError, NotFoundError
from hospital.core.utils import generate_unique_id, to_naive_utc, utcnow
from hospital.models.appointment import Appointment
from hospital.models.doctor import Doctor
from hospital.models.enums import AppointmentStatus
from hospital.repositories import AppointmentRepository, DoctorRepository, PatientRepository
from hospital.services.scheduling import DoctorLocks, find_available_doctor, validate_booking

logger = logging.getLogger(__name__)

MAX_BOOKING_ATTEMPTS = 5


@dataclass
class AppointmentChanges:
    """Replacement values for every mutable appointment field."""

    patient_id: str
    doctor_id: str
    appointment_time: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None


class AppointmentService:
    """Service layer for appointment business logic.

    ``doctor_locks`` switches on per-doctor serialisation of ``create``.
    Without it, two concurrent bookings for the same doctor and time may both
    pass the conflict check and both be stored.
    """

    def __init__(
        self,
        db: Optional[Session],
        settings: Optional[AppointmentSettings] = None,
        *,
        doctor_locks: Optional[DoctorLocks] = None,
        clock: Callable[[], datetime] = utcnow,
        appointments: Optional[AppointmentRepository] = None,
        doctors: Optional[DoctorRepository] = None,
        patients: Optional[PatientRepository] = None,
    ):
        self.db = db
        self.settings = settings or AppointmentSettings.from_config()
        self.doctor_locks = doctor_locks
        self.clock = clock
        self.appointments = appointments if appointments is not None else AppointmentRepository(db)
        self.doctors = doctors if doctors is not None else DoctorRepository(db)
        self.patients = patients if patients is not None else PatientRepository(db)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return self.appointments.get_by_id(appointment_id)

    def search(
        self,
        *,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        time_from: Optional[datetime] = None,
        time_to: Optional[datetime] = None,
        sort_by: Optional[str] = None,
        sort_dir: Optional[str] = None,
    ) -> list[Appointment]:
        if time_from is not None:
            time_from = to_naive_utc(time_from)
        if time_to is not None:
            time_to = to_naive_utc(time_to)
        if time_from is not None and time_to is not None and time_from > time_to:
            raise InvalidArgumentError("From cannot be greater than To.")

        return self.appointments.search(
            patient_id=patient_id,
            doctor_id=doctor_id,
            status=status.value if status else None,
            time_from=time_from,
            time_to=time_to,
            sort_by=(sort_by or "appointment_time").strip(),
            sort_dir=(sort_dir or "asc").strip().lower(),
        )

    def find_available_doctor(self, appointment_time: datetime, specialty: str) -> Optional[Doctor]:
        return find_available_doctor(
            to_naive_utc(appointment_time),
            specialty,
            doctors=self.doctors,
            appointments=self.appointments,
            settings=self.settings,
        )

    def create(
        self,
        patient_id: str,
        doctor_id: str,
        appointment_time: datetime,
        notes: Optional[str] = None,
    ) -> Appointment:
        appointment_time = to_naive_utc(appointment_time)
        guard = self.doctor_locks.hold(doctor_id) if self.doctor_locks and doctor_id else nullcontext()

        with guard:
            validate_booking(
                appointment_time,
                doctor_id,
                patient_id,
                patients=self.patients,
                doctors=self.doctors,
                appointments=self.appointments,
                settings=self.settings,
                now=self.clock(),
            )

            appointment = Appointment(
                id=generate_unique_id(lambda candidate: self.appointments.get_by_id(candidate) is not None),
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_time=appointment_time,
                status=AppointmentStatus.SCHEDULED.value,
                notes=notes,
                created_at=self.clock(),
            )
            appointment = self.appointments.add(appointment)

        logger.info(
            "Booked appointment %s for patient %s with doctor %s at %s",
            appointment.id,
            patient_id,
            doctor_id,
            appointment_time.isoformat(),
        )
        return appointment

    def book(
        self,
        patient_id: str,
        appointment_time: datetime,
        specialty: str,
        notes: Optional[str] = None,
    ) -> Optional[tuple[Appointment, Doctor]]:
        """Book the first free doctor of ``specialty``; ``None`` when nobody is free.

        The search runs outside the doctor lock. With doctor locks a conflict on
        insert means a concurrent booking took the chosen doctor, so the search
        runs again and moves on to the next free doctor.
        """
        attempts = MAX_BOOKING_ATTEMPTS if self.doctor_locks else 1

        for attempt in range(1, attempts + 1):
            doctor = self.find_available_doctor(appointment_time, specialty)
            if doctor is None:
                return None
            try:
                return self.create(patient_id, doctor.id, appointment_time, notes), doctor
            except ConflictError:
                if attempt == attempts:
                    raise
                logger.info(
                    "Doctor %s was booked concurrently at %s, searching again",
                    doctor.id,
                    to_naive_utc(appointment_time).isoformat(),
                )

    def update(self, appointment_id: str, changes: AppointmentChanges) -> Appointment:
        if not appointment_id:
            raise InvalidArgumentError("Id is required.")

        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found.")

        # No booking validation here: the new time and doctor are stored as
        # given, even when they overlap another appointment or fall outside
        # working hours.
        appointment.patient_id = changes.patient_id
        appointment.doctor_id = changes.doctor_id
        appointment.appointment_time = to_naive_utc(changes.appointment_time)
        appointment.notes = changes.notes
        appointment.doctor_notes = changes.doctor_notes
        appointment.status = AppointmentStatus(changes.status).value

        return self.appointments.save(appointment)

    def close(self, appointment_id: str, doctor_id: str, doctor_notes: Optional[str] = None) -> Appointment:
        if not appointment_id:
            raise InvalidArgumentError("appointmentId is required.")
        if not doctor_id:
            raise InvalidArgumentError("doctorId is required.")

        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found.")

        if appointment.doctor_id != doctor_id:
            raise InvalidOperationError("Doctor is not owner of this appointment.")
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise InvalidOperationError("Only scheduled appointments can be closed.")

        appointment.status = AppointmentStatus.COMPLETED.value
        appointment.doctor_notes = doctor_notes
        appointment = self.appointments.save(appointment)

        logger.info("Doctor %s closed appointment %s", doctor_id, appointment_id)
        return appointment

    def delete(self, appointment_id: str) -> bool:
        if not appointment_id:
            raise InvalidArgumentError("id is required.")

        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            return False

        self.appointments.delete(appointment)
        return True
