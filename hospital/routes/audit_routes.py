from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from hospital.auth.dependencies import get_audit_service, require_roles
from hospital.core.exceptions import HospitalError
from hospital.models.enums import AuditAction, Role
from hospital.models.user import User
from hospital.routes.errors import database_error, to_http_exception
from hospital.services.audit import AuditService

router = APIRouter(tags=['audit'])


class AuditLogResponse(BaseModel):
    id: str
    user_id: str | None = None
    timestamp: datetime
    action: AuditAction
    details: str

    class Config:
        from_attributes = True


@router.get('/logs', response_model=list[AuditLogResponse])
def list_audit_logs(
    user_id: str | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    time_from: datetime | None = Query(default=None, alias='from'),
    time_to: datetime | None = Query(default=None, alias='to'),
    current_user: User = Depends(require_roles(Role.ADMIN)),
    audit: AuditService = Depends(get_audit_service),
):
    del current_user

    try:
        return audit.search(user_id=user_id, action=action, time_from=time_from, time_to=time_to)
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(audit.db) from exc
