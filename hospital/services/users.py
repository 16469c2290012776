"""Admin user management: listing, lookup and blocking."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from hospital.core.exceptions import InvalidArgumentError, InvalidOperationError, NotFoundError
from hospital.models.enums import Role
from hospital.models.user import User
from hospital.repositories import UserRepository
from hospital.services.sessions import SessionStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class UserPage:
    items: list[User]
    total: int
    page: int
    page_size: int


class UserService:
    def __init__(self, db: Session, sessions: Optional[SessionStore] = None):
        self.db = db
        self.sessions = sessions
        self.users = UserRepository(db)

    def list_users(self, page: int = 1, page_size: int = 20) -> UserPage:
        if page < 1:
            raise InvalidArgumentError("Page must be at least 1.")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"PageSize must be between 1 and {MAX_PAGE_SIZE}.")

        items = self.users.list_page((page - 1) * page_size, page_size)
        return UserPage(items=items, total=self.users.count(), page=page, page_size=page_size)

    def get(self, user_id: str) -> Optional[User]:
        return self.users.get_by_id(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.users.get_by_email((email or "").strip().lower())

    def block(self, user_id: str) -> User:
        """Block a non-admin user and end all of their sessions."""
        user = self._get_manageable(user_id, "Blocking an admin is not allowed.")
        user.is_blocked = True
        user = self.users.save(user)

        revoked = self.sessions.revoke_user_sessions(user.id) if self.sessions is not None else 0
        logger.info("Blocked user %s, revoked %d session(s)", user.id, revoked)
        return user

    def unblock(self, user_id: str) -> User:
        user = self._get_manageable(user_id, "Unblocking an admin is not allowed.")
        user.is_blocked = False
        user = self.users.save(user)

        logger.info("Unblocked user %s", user.id)
        return user

    def _get_manageable(self, user_id: str, admin_message: str) -> User:
        if not user_id:
            raise InvalidArgumentError("Id is required.")

        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if user.role == Role.ADMIN.value:
            raise InvalidOperationError(admin_message)
        return user
