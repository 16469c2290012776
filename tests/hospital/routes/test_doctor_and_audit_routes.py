from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from hospital.core.config import AppointmentSettings
from hospital.models.enums import AuditAction, Role, Specialty
from hospital.models.user import User
from hospital.routes import doctor_routes
from hospital.routes.audit_routes import list_audit_logs
from hospital.routes.doctor_routes import find_available_doctor, list_doctors, my_doctor_profile
from hospital.services.appointments import AppointmentService
from hospital.services.audit import AuditService

NOW = datetime(2026, 1, 5, 8, 0)
SLOT = datetime(2026, 1, 6, 10, 0)


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(doctor_routes, 'ensure_database_ready', lambda: None)


@pytest.fixture
def service(db) -> AppointmentService:
    return AppointmentService(db, AppointmentSettings(), clock=lambda: NOW)


def test_list_doctors_filters_by_specialty(service, add_user, add_doctor) -> None:
    viewer = add_user('viewer@example.com')
    heart = add_doctor('heart@example.com', Specialty.CARDIOLOGIST)
    add_doctor('skin@example.com', Specialty.DERMATOLOGIST)

    result = list_doctors(specialty=Specialty.CARDIOLOGIST, current_user=viewer, service=service)

    assert [doctor.id for doctor in result] == [heart.id]


def test_find_available_doctor_route_returns_409_like_booking_when_all_busy(
    service, add_patient, add_doctor, add_appointment, add_user
) -> None:
    viewer = add_user('viewer@example.com')
    patient = add_patient()
    doctor = add_doctor()
    add_appointment(patient.id, doctor.id, SLOT)

    assert find_available_doctor(
        appointment_time=SLOT + timedelta(hours=1),
        specialty=Specialty.CARDIOLOGIST,
        current_user=viewer,
        service=service,
    ).id == doctor.id

    with pytest.raises(HTTPException) as exception_info:
        find_available_doctor(
            appointment_time=SLOT + timedelta(minutes=59),
            specialty=Specialty.CARDIOLOGIST,
            current_user=viewer,
            service=service,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'No available doctor for requested time and specialty.'


def test_my_doctor_profile(db, service, add_doctor, add_user) -> None:
    doctor = add_doctor()
    doctor_user = db.query(User).filter(User.id == doctor.user_id).one()

    assert my_doctor_profile(current_user=doctor_user, service=service).id == doctor.id

    stranger = add_user('stranger@example.com', Role.DOCTOR)
    with pytest.raises(HTTPException) as exception_info:
        my_doctor_profile(current_user=stranger, service=service)
    assert exception_info.value.status_code == 404


def test_list_audit_logs_filters_and_orders_newest_first(db, add_user) -> None:
    admin = add_user('admin@example.com', Role.ADMIN)
    moments = iter([NOW, NOW + timedelta(minutes=1), NOW + timedelta(minutes=2)])
    audit = AuditService(db, clock=lambda: next(moments))
    audit.log('user-1', AuditAction.USER, 'first')
    audit.log('user-1', AuditAction.APPOINTMENT, 'second')
    audit.log('user-2', AuditAction.APPOINTMENT, 'third')

    result = list_audit_logs(
        user_id=None,
        action=AuditAction.APPOINTMENT,
        time_from=None,
        time_to=None,
        current_user=admin,
        audit=audit,
    )

    assert [entry.details for entry in result] == ['third', 'second']


def test_list_audit_logs_rejects_inverted_range(db, add_user) -> None:
    admin = add_user('admin@example.com', Role.ADMIN)

    with pytest.raises(HTTPException) as exception_info:
        list_audit_logs(
            user_id=None,
            action=None,
            time_from=NOW,
            time_to=NOW - timedelta(seconds=1),
            current_user=admin,
            audit=AuditService(db),
        )

    assert exception_info.value.status_code == 400


def _failing_query(*args, **kwargs):
    raise OperationalError('SELECT', {}, Exception('database is locked'))


def test_doctor_route_rolls_back_on_database_error(db, service, add_user, monkeypatch: pytest.MonkeyPatch) -> None:
    viewer = add_user('viewer@example.com')
    rollbacks = []
    monkeypatch.setattr(db, 'rollback', lambda: rollbacks.append(True))
    monkeypatch.setattr(service.doctors, 'list_by_specialty', _failing_query)

    with pytest.raises(HTTPException) as exception_info:
        find_available_doctor(
            appointment_time=SLOT,
            specialty=Specialty.CARDIOLOGIST,
            current_user=viewer,
            service=service,
        )

    assert exception_info.value.status_code == 503
    assert rollbacks == [True]


def test_list_audit_logs_rolls_back_on_database_error(db, add_user, monkeypatch: pytest.MonkeyPatch) -> None:
    admin = add_user('admin@example.com', Role.ADMIN)
    audit = AuditService(db)
    rollbacks = []
    monkeypatch.setattr(db, 'rollback', lambda: rollbacks.append(True))
    monkeypatch.setattr(audit.repo, 'search', _failing_query)

    with pytest.raises(HTTPException) as exception_info:
        list_audit_logs(
            user_id=None,
            action=None,
            time_from=None,
            time_to=None,
            current_user=admin,
            audit=audit,
        )

    assert exception_info.value.status_code == 503
    assert rollbacks == [True]
