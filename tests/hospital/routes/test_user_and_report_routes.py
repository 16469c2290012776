from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from hospital.auth.dependencies import get_current_user
from hospital.models.audit_log import AuditLog
from hospital.models.enums import AuditAction, Role
from hospital.routes.report_routes import generate_report
from hospital.routes.user_routes import (
    block_user,
    get_user,
    get_user_by_email,
    list_users,
    unblock_user,
)
from hospital.services.audit import AuditService
from hospital.services.reports import ReportService
from hospital.services.sessions import SessionStore
from hospital.services.users import UserService

NOW = datetime(2026, 1, 5, 8, 0)
SLOT = datetime(2026, 1, 6, 10, 0)


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def service(db, sessions) -> UserService:
    return UserService(db, sessions)


@pytest.fixture
def audit(db) -> AuditService:
    return AuditService(db, clock=lambda: NOW)


@pytest.fixture
def admin(add_user):
    return add_user('admin@example.com', Role.ADMIN)


def test_block_user_locks_out_active_session(db, service, audit, sessions, admin, add_user) -> None:
    patient = add_user('patient@example.com')
    token = sessions.create_session(patient.id)

    block_user(patient.id, current_user=admin, service=service, audit=audit)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(token=token, sessions=sessions, db=db)
    assert exception_info.value.status_code == 401

    entry = db.query(AuditLog).one()
    assert entry.user_id == admin.id
    assert entry.action == AuditAction.USER.value
    assert entry.details == f'Blocked user. TargetUserId: {patient.id} ByUserId: {admin.id}'


def test_unblock_user_restores_access(db, service, audit, sessions, admin, add_user) -> None:
    patient = add_user('patient@example.com', is_blocked=True)

    unblock_user(patient.id, current_user=admin, service=service, audit=audit)

    token = sessions.create_session(patient.id)
    assert get_current_user(token=token, sessions=sessions, db=db).id == patient.id


def test_block_admin_is_bad_request_and_audited(db, service, audit, admin) -> None:
    with pytest.raises(HTTPException) as exception_info:
        block_user(admin.id, current_user=admin, service=service, audit=audit)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Blocking an admin is not allowed.'
    assert db.query(AuditLog).one().details.startswith('Block failed.')


def test_block_unknown_user_is_404(service, audit, admin) -> None:
    with pytest.raises(HTTPException) as exception_info:
        unblock_user('missing', current_user=admin, service=service, audit=audit)

    assert exception_info.value.status_code == 404


def test_list_and_lookup_users(service, admin, add_user) -> None:
    patient = add_user('patient@example.com')

    page = list_users(page=1, page_size=20, current_user=admin, service=service)
    assert page.total == 2
    assert {item.email for item in page.items} == {'admin@example.com', 'patient@example.com'}

    assert get_user(patient.id, current_user=admin, service=service).id == patient.id
    assert get_user_by_email('PATIENT@example.com', current_user=admin, service=service).id == patient.id

    with pytest.raises(HTTPException) as exception_info:
        get_user('missing', current_user=admin, service=service)
    assert exception_info.value.status_code == 404


def test_list_users_rejects_bad_page(service, admin) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_users(page=0, page_size=20, current_user=admin, service=service)

    assert exception_info.value.status_code == 400


def test_generate_report_returns_counts_and_audits(db, audit, admin, add_patient, add_doctor, add_appointment) -> None:
    patient = add_patient()
    doctor = add_doctor()
    add_appointment(patient.id, doctor.id, SLOT)

    result = generate_report(
        time_from=None,
        time_to=None,
        doctor_id=doctor.id,
        patient_id=None,
        current_user=admin,
        service=ReportService(db, clock=lambda: NOW),
        audit=audit,
    )

    assert result.total_patients == 1
    assert result.total_appointments == 1
    assert result.generated_at == NOW
    entry = db.query(AuditLog).one()
    assert entry.action == AuditAction.PATIENT.value
    assert entry.details.startswith('Generated report.')


def test_generate_report_rejects_inverted_range(db, audit, admin) -> None:
    with pytest.raises(HTTPException) as exception_info:
        generate_report(
            time_from=SLOT,
            time_to=SLOT - timedelta(hours=1),
            doctor_id=None,
            patient_id=None,
            current_user=admin,
            service=ReportService(db, clock=lambda: NOW),
            audit=audit,
        )

    assert exception_info.value.status_code == 400
