from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital.auth.dependencies import get_audit_service, get_doctor_locks, require_roles
from hospital.core.exceptions import HospitalError
from hospital.database import get_db
from hospital.models.enums import AppointmentStatus, AuditAction, Role, Specialty
from hospital.models.user import User
from hospital.routes.errors import database_error, ensure_database_ready, to_http_exception
from hospital.services.appointments import AppointmentChanges, AppointmentService
from hospital.services.audit import AuditService
from hospital.services.scheduling import DoctorLocks

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600
NO_AVAILABLE_DOCTOR_DETAIL = 'No available doctor for requested time and specialty.'


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class BookAppointmentRequest(BaseModel):
    appointment_time: datetime
    specialty: Specialty
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class CreateAppointmentRequest(BaseModel):
    patient_id: str
    doctor_id: str
    appointment_time: datetime
    notes: str | None = None

    @field_validator('patient_id', 'doctor_id')
    @classmethod
    def strip_identifier(cls, value: str) -> str:
        return value.strip()

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(BaseModel):
    patient_id: str
    doctor_id: str
    appointment_time: datetime
    status: AppointmentStatus
    notes: str | None = None
    doctor_notes: str | None = None

    @field_validator('notes', 'doctor_notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class CloseAppointmentRequest(BaseModel):
    doctor_notes: str | None = None

    @field_validator('doctor_notes')
    @classmethod
    def validate_doctor_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    appointment_time: datetime
    status: AppointmentStatus
    notes: str | None = None
    doctor_notes: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookAppointmentResponse(BaseModel):
    message: str
    appointment: AppointmentResponse
    doctor_first_name: str
    doctor_last_name: str


def get_appointment_service(
    db: Session = Depends(get_db),
    doctor_locks: Optional[DoctorLocks] = Depends(get_doctor_locks),
) -> AppointmentService:
    return AppointmentService(db, doctor_locks=doctor_locks)


@router.post('/book', response_model=BookAppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: User = Depends(require_roles(Role.PATIENT)),
    service: AppointmentService = Depends(get_appointment_service),
    audit: AuditService = Depends(get_audit_service),
):
    ensure_database_ready()

    try:
        patient = service.patients.get_by_user_id(current_user.id)
        if patient is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Patient profile not found.')

        requested = data.appointment_time.isoformat()
        try:
            booked = service.book(patient.id, data.appointment_time, data.specialty.value, data.notes)
        except HospitalError as exc:
            audit.safe_log(
                current_user.id,
                AuditAction.APPOINTMENT,
                f'Booking failed: {exc} PatientId: {patient.id} Time: {requested}',
            )
            raise to_http_exception(exc) from exc

        if booked is None:
            audit.safe_log(
                current_user.id,
                AuditAction.APPOINTMENT,
                f'Booking failed - no available doctor. PatientId: {patient.id} Time: {requested}',
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=NO_AVAILABLE_DOCTOR_DETAIL,
            )

        appointment, doctor = booked

        audit.safe_log(
            current_user.id,
            AuditAction.APPOINTMENT,
            f'Booked AppointmentId: {appointment.id} PatientId: {patient.id} DoctorId: {doctor.id} Time: {requested}',
        )

        return BookAppointmentResponse(
            message='Appointment created successfully.',
            appointment=AppointmentResponse.model_validate(appointment),
            doctor_first_name=doctor.first_name,
            doctor_last_name=doctor.last_name,
        )
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
    audit: AuditService = Depends(get_audit_service),
):
    ensure_database_ready()

    try:
        appointment = service.create(data.patient_id, data.doctor_id, data.appointment_time, data.notes)
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(
        current_user.id,
        AuditAction.APPOINTMENT,
        f'Created AppointmentId: {appointment.id} PatientId: {data.patient_id} DoctorId: {data.doctor_id}',
    )
    return appointment


@router.get('/patient', response_model=list[AppointmentResponse])
def list_patient_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias='status'),
    time_from: datetime | None = Query(default=None, alias='from'),
    time_to: datetime | None = Query(default=None, alias='to'),
    sort_by: str | None = Query(default=None),
    sort_dir: str | None = Query(default=None),
    current_user: User = Depends(require_roles(Role.PATIENT)),
    service: AppointmentService = Depends(get_appointment_service),
):
    ensure_database_ready()

    try:
        patient = service.patients.get_by_user_id(current_user.id)
        if patient is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Patient profile not found.')

        return service.search(
            patient_id=patient.id,
            status=status_filter,
            time_from=time_from,
            time_to=time_to,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc


@router.get('/doctor', response_model=list[AppointmentResponse])
def list_doctor_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias='status'),
    time_from: datetime | None = Query(default=None, alias='from'),
    time_to: datetime | None = Query(default=None, alias='to'),
    sort_by: str | None = Query(default=None),
    sort_dir: str | None = Query(default=None),
    current_user: User = Depends(require_roles(Role.DOCTOR)),
    service: AppointmentService = Depends(get_appointment_service),
):
    ensure_database_ready()

    try:
        doctor = service.doctors.get_by_user_id(current_user.id)
        if doctor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Doctor profile not found.')

        return service.search(
            doctor_id=doctor.id,
            status=status_filter,
            time_from=time_from,
            time_to=time_to,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc


@router.get('', response_model=list[AppointmentResponse])
def search_appointments(
    patient_id: str | None = Query(default=None),
    doctor_id: str | None = Query(default=None),
    status_filter: AppointmentStatus | None = Query(default=None, alias='status'),
    time_from: datetime | None = Query(default=None, alias='from'),
    time_to: datetime | None = Query(default=None, alias='to'),
    sort_by: str | None = Query(default=None),
    sort_dir: str | None = Query(default=None),
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
):
    del current_user
    ensure_database_ready()

    try:
        return service.search(
            patient_id=patient_id,
            doctor_id=doctor_id,
            status=status_filter,
            time_from=time_from,
            time_to=time_to,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
):
    del current_user
    ensure_database_ready()

    try:
        appointment = service.get(appointment_id)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')
    return appointment


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
    audit: AuditService = Depends(get_audit_service),
):
    ensure_database_ready()

    changes = AppointmentChanges(
        patient_id=data.patient_id,
        doctor_id=data.doctor_id,
        appointment_time=data.appointment_time,
        status=data.status,
        notes=data.notes,
        doctor_notes=data.doctor_notes,
    )

    try:
        appointment = service.update(appointment_id, changes)
    except HospitalError as exc:
        audit.safe_log(current_user.id, AuditAction.APPOINTMENT, f'Update failed: {exc} AppointmentId: {appointment_id}')
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(current_user.id, AuditAction.APPOINTMENT, f'Updated AppointmentId: {appointment_id}')
    return appointment


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
    audit: AuditService = Depends(get_audit_service),
):
    ensure_database_ready()

    try:
        deleted = service.delete(appointment_id)
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    audit.safe_log(current_user.id, AuditAction.APPOINTMENT, f'Deleted AppointmentId: {appointment_id}')


@router.post('/{appointment_id}/close', status_code=status.HTTP_204_NO_CONTENT)
def close_appointment(
    appointment_id: str,
    data: CloseAppointmentRequest,
    current_user: User = Depends(require_roles(Role.DOCTOR)),
    service: AppointmentService = Depends(get_appointment_service),
    audit: AuditService = Depends(get_audit_service),
):
    ensure_database_ready()

    try:
        doctor = service.doctors.get_by_user_id(current_user.id)
        if doctor is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Doctor profile not found.')

        try:
            service.close(appointment_id, doctor.id, data.doctor_notes)
        except HospitalError as exc:
            audit.safe_log(
                current_user.id,
                AuditAction.APPOINTMENT,
                f'Close failed: {exc} AppointmentId: {appointment_id} DoctorId: {doctor.id}',
            )
            raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(
        current_user.id,
        AuditAction.APPOINTMENT,
        f'Closed AppointmentId: {appointment_id} DoctorId: {doctor.id}',
    )
