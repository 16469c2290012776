"""Doctor availability and booking conflict rules.

Every appointment occupies the half-open interval
``[appointment_time, appointment_time + session_duration)``; two appointments
touching at a boundary do not overlap.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from threading import Lock
from typing import Optional

from hospital.core.config import AppointmentSettings
from hospital.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from hospital.models.appointment import Appointment
from hospital.models.doctor import Doctor
from hospital.models.enums import AppointmentStatus
from hospital.repositories import AppointmentRepository, DoctorRepository, PatientRepository

logger = logging.getLogger(__name__)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def has_conflict(
    appointments: Iterable[Appointment],
    start: datetime,
    duration: timedelta,
    exclude_appointment_id: Optional[str] = None,
) -> bool:
    end = start + duration
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            continue
        existing_start = appointment.appointment_time
        if intervals_overlap(existing_start, existing_start + duration, start, end):
            return True
    return False


def is_within_working_hours(start: datetime, duration: timedelta, settings: AppointmentSettings) -> bool:
    """Coarse check on the hour component of the start and end only.

    A 60 minute session at 19:30 ends at 20:30; hour 20 is not before a
    closing hour of 20, so it is rejected.
    """
    end = start + duration
    return all(
        settings.opening_hour <= moment.hour < settings.closing_hour
        for moment in (start, end)
    )


def find_available_doctor(
    appointment_time: datetime,
    specialty: str,
    *,
    doctors: DoctorRepository,
    appointments: AppointmentRepository,
    settings: AppointmentSettings,
) -> Optional[Doctor]:
    """Return the first doctor of ``specialty`` with no overlapping scheduled appointment.

    Doctors are tried in the order the directory returns them and the first
    free one wins; ``None`` means nobody is free.
    """
    duration = timedelta(minutes=settings.session_duration_minutes)

    for doctor in doctors.list_by_specialty(specialty):
        if not has_conflict(appointments.list_by_doctor(doctor.id), appointment_time, duration):
            return doctor

    logger.info("No %s available at %s", specialty, appointment_time.isoformat())
    return None


def validate_booking(
    appointment_time: datetime,
    doctor_id: Optional[str],
    patient_id: Optional[str],
    *,
    patients: PatientRepository,
    doctors: DoctorRepository,
    appointments: AppointmentRepository,
    settings: AppointmentSettings,
    now: datetime,
    exclude_appointment_id: Optional[str] = None,
) -> None:
    """Raise on the first failing booking rule; return ``None`` if the booking is allowed."""
    if not patient_id:
        raise InvalidArgumentError("PatientId is required.")
    if not doctor_id:
        raise InvalidArgumentError("DoctorId is required.")

    if appointment_time <= now:
        raise InvalidArgumentError("Can't set an appointment in the past.")

    if patients.get_by_id(patient_id) is None:
        raise NotFoundError("Patient not found.")
    if doctors.get_by_id(doctor_id) is None:
        raise NotFoundError("Doctor not found.")

    duration = timedelta(minutes=settings.session_duration_minutes)

    if not is_within_working_hours(appointment_time, duration, settings):
        raise InvalidArgumentError("Can't set an appointment outside of working hours.")

    if has_conflict(appointments.list_by_doctor(doctor_id), appointment_time, duration, exclude_appointment_id):
        raise ConflictError("Doctor is not available at requested time.")


class DoctorLocks:
    """Per-doctor locks shared by every request in the process.

    Holding a doctor's lock across validate-then-insert keeps two bookings for
    the same doctor from both passing the conflict check. It does not guard
    against other processes writing to the same database.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._registry_lock = Lock()

    def lock_for(self, doctor_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(doctor_id)
            if lock is None:
                lock = self._locks[doctor_id] = Lock()
            return lock

    @contextmanager
    def hold(self, doctor_id: str) -> Iterator[None]:
        with self.lock_for(doctor_id):
            yield
