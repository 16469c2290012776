"""In-memory session token storage.

One ``SessionStore`` is created when the application starts and dropped when
it stops; tokens are never written to the database, so a restart logs
everybody out.

Expired entries are only evicted when they are looked up. A token that
expires and is never presented again stays in memory until it is revoked or
the process exits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional

from hospital.core.utils import generate_unique_id, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class SessionToken:
    token: str
    user_id: str
    created_at: datetime
    expires_at: datetime


class SessionStore:
    """Thread-safe token -> session mapping with lazy expiry."""

    def __init__(
        self,
        default_ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions: dict[str, SessionToken] = {}
        self._lock = Lock()
        self._default_ttl = default_ttl
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create_session(self, user_id: str, ttl: Optional[timedelta] = None) -> str:
        now = self._clock()
        expires_at = now + (ttl if ttl is not None else self._default_ttl)

        with self._lock:
            token = generate_unique_id(self._sessions.__contains__)
            self._sessions[token] = SessionToken(
                token=token,
                user_id=user_id,
                created_at=now,
                expires_at=expires_at,
            )

        logger.debug("Created session for user %s expiring at %s", user_id, expires_at.isoformat())
        return token

    def validate_session(self, token: str) -> Optional[str]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expires_at > self._clock():
                return session.user_id
            del self._sessions[token]

        logger.debug("Evicted expired session for user %s", session.user_id)
        return None

    def revoke_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def revoke_user_sessions(self, user_id: str) -> int:
        """Drop every session of ``user_id``; returns how many were dropped."""
        with self._lock:
            tokens = [token for token, session in self._sessions.items() if session.user_id == user_id]
            for token in tokens:
                del self._sessions[token]
        return len(tokens)

    def get_remaining(self, token: str) -> Optional[timedelta]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            remaining = session.expires_at - self._clock()
            if remaining > timedelta(0):
                return remaining
            del self._sessions[token]

        logger.debug("Evicted expired session for user %s", session.user_id)
        return None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
