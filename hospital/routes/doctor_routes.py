from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from hospital.auth.dependencies import get_current_user, require_roles
from hospital.models.enums import Role, Specialty
from hospital.models.user import User
from hospital.routes.appointment_routes import NO_AVAILABLE_DOCTOR_DETAIL, get_appointment_service
from hospital.routes.errors import database_error, ensure_database_ready
from hospital.services.appointments import AppointmentService

router = APIRouter(tags=['doctors'])


class DoctorResponse(BaseModel):
    id: str
    user_id: str
    first_name: str
    last_name: str
    birth_date: date | None = None
    phone: str | None = None
    email: str | None = None
    specialty: Specialty

    class Config:
        from_attributes = True


@router.get('', response_model=list[DoctorResponse])
def list_doctors(
    specialty: Specialty = Query(...),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    del current_user
    ensure_database_ready()

    try:
        return service.doctors.list_by_specialty(specialty.value)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc


@router.get('/available', response_model=DoctorResponse)
def find_available_doctor(
    appointment_time: datetime = Query(...),
    specialty: Specialty = Query(...),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Same rule and status as booking: 409 when no doctor of the specialty is free."""
    del current_user
    ensure_database_ready()

    try:
        doctor = service.find_available_doctor(appointment_time, specialty.value)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if doctor is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NO_AVAILABLE_DOCTOR_DETAIL)
    return doctor


@router.get('/me', response_model=DoctorResponse)
def my_doctor_profile(
    current_user: User = Depends(require_roles(Role.DOCTOR)),
    service: AppointmentService = Depends(get_appointment_service),
):
    ensure_database_ready()

    try:
        doctor = service.doctors.get_by_user_id(current_user.id)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if doctor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Doctor profile not found.')
    return doctor
