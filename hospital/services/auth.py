"""Registration, login and logout on top of the in-memory session store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from hospital.core import config
from hospital.core.exceptions import AuthenticationError, ConflictError, InvalidArgumentError
from hospital.core.utils import generate_unique_id, utcnow
from hospital.models.doctor import Doctor
from hospital.models.enums import Role, Specialty
from hospital.models.patient import Patient
from hospital.models.user import User
from hospital.repositories import DoctorRepository, PatientRepository, UserRepository
from hospital.services.sessions import SessionStore

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


@dataclass
class Registration:
    email: str
    password: str
    first_name: str
    last_name: str
    birth_date: Optional[date] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class AuthResult:
    token: str
    user_id: str
    role: Role


class AuthService:
    def __init__(
        self,
        db: Session,
        sessions: SessionStore,
        session_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.sessions = sessions
        self.session_ttl = session_ttl or timedelta(hours=config.SESSION_TTL_HOURS)
        self.clock = clock
        self.users = UserRepository(db)
        self.patients = PatientRepository(db)
        self.doctors = DoctorRepository(db)

    def register(
        self,
        data: Registration,
        role: Role = Role.PATIENT,
        specialty: Optional[Specialty] = None,
    ) -> AuthResult:
        """Create a user and its patient or doctor profile in one commit, then open a session."""
        email = (data.email or "").strip().lower()
        if not email:
            raise InvalidArgumentError("Email is required.")
        if not data.password:
            raise InvalidArgumentError("Password is required.")
        if role in (Role.PATIENT, Role.DOCTOR):
            if not (data.first_name or "").strip():
                raise InvalidArgumentError("FirstName is required.")
            if not (data.last_name or "").strip():
                raise InvalidArgumentError("LastName is required.")
        if data.birth_date is not None and data.birth_date >= self.clock().date():
            raise InvalidArgumentError("Birth date must be in the past.")

        if self.users.get_by_email(email) is not None:
            raise ConflictError("Email is already registered.")

        now = self.clock()
        user = User(
            id=generate_unique_id(lambda candidate: self.users.get_by_id(candidate) is not None),
            email=email,
            hashed_password=hash_password(data.password),
            role=role.value,
            is_blocked=False,
            created_at=now,
        )
        self.db.add(user)

        if role == Role.PATIENT:
            self.db.add(
                Patient(
                    id=generate_unique_id(lambda candidate: self.patients.get_by_id(candidate) is not None),
                    user_id=user.id,
                    first_name=data.first_name.strip(),
                    last_name=data.last_name.strip(),
                    birth_date=data.birth_date,
                    phone=data.phone,
                    email=email,
                    created_at=now,
                )
            )
        elif role == Role.DOCTOR:
            self.db.add(
                Doctor(
                    id=generate_unique_id(lambda candidate: self.doctors.get_by_id(candidate) is not None),
                    user_id=user.id,
                    first_name=data.first_name.strip(),
                    last_name=data.last_name.strip(),
                    birth_date=data.birth_date,
                    phone=data.phone,
                    email=email,
                    specialty=(specialty or Specialty.GENERAL_PRACTITIONER).value,
                    created_at=now,
                )
            )

        self.db.commit()
        logger.info("Registered %s user %s", role.value, user.id)

        token = self.sessions.create_session(user.id, self.session_ttl)
        return AuthResult(token=token, user_id=user.id, role=role)

    def login(self, email: str, password: str) -> AuthResult:
        normalized = (email or "").strip().lower()
        if not normalized or not password:
            raise InvalidArgumentError("Email and password are required.")

        user = self.users.get_by_email(normalized)
        if user is None:
            raise AuthenticationError("Invalid credentials.")
        if user.is_blocked:
            raise AuthenticationError("User is blocked.")
        if not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid credentials.")

        token = self.sessions.create_session(user.id, self.session_ttl)
        return AuthResult(token=token, user_id=user.id, role=Role(user.role))

    def logout(self, token: str) -> None:
        self.sessions.revoke_session(token)

    def ensure_admin(self, email: str, password: str) -> User:
        """Create the bootstrap admin account if it does not exist yet."""
        normalized = email.strip().lower()
        existing = self.users.get_by_email(normalized)
        if existing is not None:
            return existing

        user = User(
            id=generate_unique_id(lambda candidate: self.users.get_by_id(candidate) is not None),
            email=normalized,
            hashed_password=hash_password(password),
            role=Role.ADMIN.value,
            is_blocked=False,
            created_at=self.clock(),
        )
        self.db.add(user)
        self.db.commit()
        logger.info("Created bootstrap admin %s", normalized)
        return user
