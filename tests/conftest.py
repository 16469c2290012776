import os
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('AUTH_FAILURE_DELAY_SECONDS', '0')

from hospital.core import config  # noqa: E402
from hospital.core.utils import generate_unique_id  # noqa: E402
from hospital.database import Base  # noqa: E402
from hospital.models.appointment import Appointment  # noqa: E402
from hospital.models.audit_log import AuditLog  # noqa: F401, E402
from hospital.models.doctor import Doctor  # noqa: E402
from hospital.models.enums import AppointmentStatus, Role, Specialty  # noqa: E402
from hospital.models.patient import Patient  # noqa: E402
from hospital.models.user import User  # noqa: E402
from hospital.services.auth import hash_password  # noqa: E402

NOW = datetime(2026, 1, 5, 8, 0)


@pytest.fixture(autouse=True)
def no_auth_failure_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'AUTH_FAILURE_DELAY_SECONDS', 0)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def add_user(db):
    def factory(email: str, role: Role = Role.PATIENT, password: str = 'secret-password', is_blocked: bool = False) -> User:
        user = User(
            id=generate_unique_id(lambda _: False),
            email=email,
            hashed_password=hash_password(password),
            role=role.value,
            is_blocked=is_blocked,
            created_at=NOW,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def add_patient(db, add_user):
    def factory(email: str = 'patient@example.com') -> Patient:
        user = add_user(email, Role.PATIENT)
        patient = Patient(
            id=generate_unique_id(lambda _: False),
            user_id=user.id,
            first_name='Pat',
            last_name='Ient',
            birth_date=date(1990, 4, 1),
            email=email,
            created_at=NOW,
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return factory


@pytest.fixture
def add_doctor(db, add_user):
    def factory(
        email: str = 'doctor@example.com',
        specialty: Specialty = Specialty.CARDIOLOGIST,
        last_name: str = 'House',
    ) -> Doctor:
        user = add_user(email, Role.DOCTOR)
        doctor = Doctor(
            id=generate_unique_id(lambda _: False),
            user_id=user.id,
            first_name='Greg',
            last_name=last_name,
            birth_date=date(1970, 6, 11),
            email=email,
            specialty=specialty.value,
            created_at=NOW,
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return factory


@pytest.fixture
def add_appointment(db):
    def factory(
        patient_id: str,
        doctor_id: str,
        appointment_time: datetime,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> Appointment:
        appointment = Appointment(
            id=generate_unique_id(lambda _: False),
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_time=appointment_time,
            status=status.value,
            created_at=NOW,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return factory
