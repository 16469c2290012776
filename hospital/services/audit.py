"""Audit trail of user-visible actions."""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital.core.exceptions import InvalidArgumentError
from hospital.core.utils import generate_unique_id, to_naive_utc, utcnow
from hospital.models.audit_log import AuditLog
from hospital.models.enums import AuditAction
from hospital.repositories import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = AuditRepository(db)
        self.clock = clock

    def log(self, user_id: Optional[str], action: AuditAction, details: Optional[str] = None) -> AuditLog:
        entry = AuditLog(
            id=generate_unique_id(lambda candidate: self.repo.get_by_id(candidate) is not None),
            user_id=user_id,
            action=AuditAction(action).value,
            details=details or "",
            timestamp=self.clock(),
        )
        return self.repo.add(entry)

    def safe_log(self, user_id: Optional[str], action: AuditAction, details: Optional[str] = None) -> None:
        """Record an entry; a failure is logged and never reaches the caller."""
        try:
            self.log(user_id, action, details)
        except (SQLAlchemyError, RuntimeError):
            self.db.rollback()
            logger.exception("Failed to write audit entry (%s): %s", AuditAction(action).value, details)

    def search(
        self,
        *,
        user_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        time_from: Optional[datetime] = None,
        time_to: Optional[datetime] = None,
    ) -> list[AuditLog]:
        if time_from is not None:
            time_from = to_naive_utc(time_from)
        if time_to is not None:
            time_to = to_naive_utc(time_to)
        if time_from is not None and time_to is not None and time_from > time_to:
            raise InvalidArgumentError("From cannot be greater than To.")

        return self.repo.search(
            user_id=user_id,
            action=action.value if action else None,
            time_from=time_from,
            time_to=time_to,
        )
