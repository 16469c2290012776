from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital.auth.dependencies import get_audit_service, get_session_store, require_roles
from hospital.core.exceptions import HospitalError
from hospital.database import get_db
from hospital.models.enums import AuditAction, Role
from hospital.models.user import User
from hospital.routes.errors import database_error, to_http_exception
from hospital.services.audit import AuditService
from hospital.services.sessions import SessionStore
from hospital.services.users import UserService

router = APIRouter(tags=['users'])


class UserSummaryResponse(BaseModel):
    id: str
    email: str
    role: Role
    is_blocked: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserPageResponse(BaseModel):
    items: list[UserSummaryResponse]
    total: int
    page: int
    page_size: int


def get_user_service(
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
) -> UserService:
    return UserService(db, sessions)


def _user_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found.')


@router.get('', response_model=UserPageResponse)
def list_users(
    page: int = Query(default=1),
    page_size: int = Query(default=20),
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
):
    del current_user

    try:
        result = service.list_users(page, page_size)
    except HospitalError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    return UserPageResponse(
        items=[UserSummaryResponse.model_validate(user) for user in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get('/by-email', response_model=UserSummaryResponse)
def get_user_by_email(
    email: str = Query(...),
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
):
    del current_user

    try:
        user = service.get_by_email(email)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if user is None:
        raise _user_not_found()
    return user


@router.get('/{user_id}', response_model=UserSummaryResponse)
def get_user(
    user_id: str,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
):
    del current_user

    try:
        user = service.get(user_id)
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    if user is None:
        raise _user_not_found()
    return user


@router.post('/{user_id}/block', status_code=status.HTTP_204_NO_CONTENT)
def block_user(
    user_id: str,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        service.block(user_id)
    except HospitalError as exc:
        audit.safe_log(
            current_user.id,
            AuditAction.USER,
            f'Block failed. TargetUserId: {user_id} ByUserId: {current_user.id} Message: {exc}',
        )
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(current_user.id, AuditAction.USER, f'Blocked user. TargetUserId: {user_id} ByUserId: {current_user.id}')


@router.post('/{user_id}/unblock', status_code=status.HTTP_204_NO_CONTENT)
def unblock_user(
    user_id: str,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        service.unblock(user_id)
    except HospitalError as exc:
        audit.safe_log(
            current_user.id,
            AuditAction.USER,
            f'Unblock failed. TargetUserId: {user_id} ByUserId: {current_user.id} Message: {exc}',
        )
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_error(service.db) from exc

    audit.safe_log(current_user.id, AuditAction.USER, f'Unblocked user. TargetUserId: {user_id} ByUserId: {current_user.id}')
