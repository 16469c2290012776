import logging
import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital.auth.dependencies import (
    get_audit_service,
    get_current_user,
    get_session_store,
    get_token,
    require_roles,
)
from hospital.core import config
from hospital.core.exceptions import HospitalError
from hospital.database import get_db
from hospital.models.enums import AuditAction, Role, Specialty
from hospital.models.user import User
from hospital.routes.errors import database_error, to_http_exception
from hospital.services.audit import AuditService
from hospital.services.auth import AuthService, Registration
from hospital.services.sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=['auth'])


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    birth_date: date | None = None
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    def to_registration(self) -> Registration:
        return Registration(
            email=self.email,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
            birth_date=self.birth_date,
            phone=self.phone,
        )


class RegisterDoctorRequest(RegisterRequest):
    specialty: Specialty = Specialty.GENERAL_PRACTITIONER


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user_id: str
    role: Role


class UserResponse(BaseModel):
    id: str
    email: str
    role: Role

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    remaining_seconds: int


def get_auth_service(
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
) -> AuthService:
    return AuthService(db, sessions)


def _delay_failed_attempt() -> None:
    # Slow down credential guessing.
    if config.AUTH_FAILURE_DELAY_SECONDS > 0:
        time.sleep(config.AUTH_FAILURE_DELAY_SECONDS)


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        result = service.register(data.to_registration(), Role.PATIENT)
    except HospitalError as exc:
        audit.safe_log(None, AuditAction.USER, f'Register attempt Email: {data.email} Success: False Message: {exc}')
        _delay_failed_attempt()
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(result.user_id, AuditAction.USER, f'Register attempt Email: {data.email} Success: True')
    return AuthResponse(token=result.token, user_id=result.user_id, role=result.role)


@router.post('/register/doctor', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_doctor(
    data: RegisterDoctorRequest,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: AuthService = Depends(get_auth_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        result = service.register(data.to_registration(), Role.DOCTOR, data.specialty)
    except HospitalError as exc:
        audit.safe_log(current_user.id, AuditAction.DOCTOR, f'Doctor registration failed Email: {data.email} Message: {exc}')
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(
        current_user.id,
        AuditAction.DOCTOR,
        f'Registered doctor UserId: {result.user_id} Specialty: {data.specialty.value}',
    )
    return AuthResponse(token=result.token, user_id=result.user_id, role=result.role)


@router.post('/login', response_model=AuthResponse)
def login(
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        result = service.login(data.email, data.password)
    except HospitalError as exc:
        audit.safe_log(None, AuditAction.USER, f'Login attempt Email: {data.email} Success: False Message: {exc}')
        _delay_failed_attempt()
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(result.user_id, AuditAction.USER, f'Login attempt Email: {data.email} Success: True')
    return AuthResponse(token=result.token, user_id=result.user_id, role=result.role)


@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str = Depends(get_token),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.logout(token)
    logger.info('User %s logged out', current_user.id)


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get('/session', response_model=SessionResponse)
def session_remaining(
    token: str = Depends(get_token),
    current_user: User = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
):
    del current_user
    remaining = sessions.get_remaining(token)
    if remaining is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid or expired token.')
    return SessionResponse(remaining_seconds=int(remaining.total_seconds()))
