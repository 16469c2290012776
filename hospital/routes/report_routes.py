from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital.auth.dependencies import get_audit_service, require_roles
from hospital.core.exceptions import HospitalError
from hospital.database import get_db
from hospital.models.enums import AuditAction, Role
from hospital.models.user import User
from hospital.routes.errors import database_error, to_http_exception
from hospital.services.audit import AuditService
from hospital.services.reports import ReportService

router = APIRouter(tags=['reports'])


class ReportResponse(BaseModel):
    total_patients: int
    total_appointments: int
    average_age: float
    generated_at: datetime

    class Config:
        from_attributes = True


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get('/generate', response_model=ReportResponse)
def generate_report(
    time_from: datetime | None = Query(default=None, alias='from'),
    time_to: datetime | None = Query(default=None, alias='to'),
    doctor_id: str | None = Query(default=None),
    patient_id: str | None = Query(default=None),
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: ReportService = Depends(get_report_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        result = service.generate(
            time_from=time_from,
            time_to=time_to,
            doctor_id=doctor_id,
            patient_id=patient_id,
        )
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(
        current_user.id,
        AuditAction.PATIENT,
        f'Generated report. From: {time_from} To: {time_to} DoctorId: {doctor_id} PatientId: {patient_id}',
    )
    return ReportResponse.model_validate(result)
