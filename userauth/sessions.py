"""Session and identity handling for the web interface."""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import anyio

from .database import Database
from .models import User
from .security import PasswordHasher


logger = logging.getLogger("userauth.sessions")

UNKNOWN_EMAIL = "unknown email"
BAD_PASSWORD = "bad password"


class AuthFailure(Exception):
    """Raised when submitted credentials do not match a stored account."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class _SessionRecord:
    user_id: int
    expires_at: datetime


class SessionManager:
    """Generate, validate, and revoke login sessions."""

    def __init__(self, *, ttl: timedelta = timedelta(hours=8)) -> None:
        self._ttl = ttl
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def create(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        now = self._now()
        record = _SessionRecord(user_id=user_id, expires_at=now + self._ttl)
        with self._lock:
            self._purge_expired(now)
            self._sessions[token] = record
        return token

    def purge_expired(self) -> int:
        """Drop every expired session and return how many were removed."""

        with self._lock:
            return self._purge_expired(self._now())

    def _purge_expired(self, now: datetime) -> int:
        expired = [token for token, record in self._sessions.items() if record.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def resolve(self, token: str) -> Optional[int]:
        now = self._now()
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                return None
            if record.expires_at <= now:
                self._sessions.pop(token, None)
                return None
            record.expires_at = now + self._ttl
            return record.user_id

    def destroy(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


class IdentityManager:
    """Authenticate credentials and map session tokens to users.

    Database lookups and password verification run in worker threads so a
    slow query or hash only suspends the request that issued it.
    """

    def __init__(
        self,
        *,
        database: Database,
        hasher: PasswordHasher,
        sessions: SessionManager,
    ) -> None:
        self._database = database
        self._hasher = hasher
        self._sessions = sessions

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    async def authenticate(self, email: str, password: str) -> User:
        user = await anyio.to_thread.run_sync(self._database.get_user_by_email, email)
        if user is None:
            # Spend the same hashing time as a real check.
            await self._hasher.dummy_verify_async()
            raise AuthFailure(UNKNOWN_EMAIL)
        if not await self._hasher.verify_async(password, user.password_hash):
            raise AuthFailure(BAD_PASSWORD)
        return user

    def establish_session(self, user: User) -> str:
        token = self._sessions.create(user.id)
        logger.info("User %s signed in", user.id)
        return token

    async def current_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        user_id = self._sessions.resolve(token)
        if user_id is None:
            return None
        user = await anyio.to_thread.run_sync(self._database.get_user, user_id)
        if user is None:
            self._sessions.destroy(token)
        return user

    def end_session(self, token: Optional[str]) -> None:
        if not token:
            return
        self._sessions.destroy(token)


__all__ = [
    "AuthFailure",
    "BAD_PASSWORD",
    "IdentityManager",
    "SessionManager",
    "UNKNOWN_EMAIL",
]
