import time
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from hospital.core import config
from hospital.database import get_db
from hospital.models.enums import Role
from hospital.models.user import User
from hospital.repositories import UserRepository
from hospital.services.audit import AuditService
from hospital.services.scheduling import DoctorLocks
from hospital.services.sessions import SessionStore

security = HTTPBearer(auto_error=False)


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_doctor_locks(request: Request) -> Optional[DoctorLocks]:
    return getattr(request.app.state, "doctor_locks", None)


def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_auth_token: Optional[str] = Header(default=None),
) -> str:
    token = credentials.credentials.strip() if credentials else ""
    if not token and x_auth_token:
        token = x_auth_token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return token


def _reject(detail: str) -> HTTPException:
    # Slow down token guessing.
    if config.AUTH_FAILURE_DELAY_SECONDS > 0:
        time.sleep(config.AUTH_FAILURE_DELAY_SECONDS)
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_current_user(
    token: str = Depends(get_token),
    sessions: SessionStore = Depends(get_session_store),
    db: Session = Depends(get_db),
) -> User:
    try:
        UUID(token)
    except ValueError as exc:
        raise _reject("Invalid token format.") from exc

    user_id = sessions.validate_session(token)
    if user_id is None:
        raise _reject("Invalid or expired token.")

    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is blocked.")
    return user


def require_roles(*roles: Role):
    allowed = {role.value for role in roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role.")
        return current_user

    return dependency


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    return AuditService(db)
