"""
Session validation.

Sessions are created by the external authentication provider and stored in
the `sessions` table. This module only looks them up: a token arrives either
as `Authorization: Bearer <token>` or in the session cookie, is checked
against the table, and validated sessions are cached in memory briefly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from app.core.config import settings
from app.core.db_client import db
from app.core.exceptions import UnauthorizedError
from app.core.logging import get_auth_logger
from app.models.db import SessionModel

logger = get_auth_logger()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class SimpleSession:
    """Authenticated caller as seen by request handlers."""

    session_id: str
    user_id: str
    expires_at: datetime
    email: Optional[str] = None
    name: Optional[str] = None
    cached_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self) -> bool:
        """Check if session is expired."""
        return datetime.now(timezone.utc) > _as_utc(self.expires_at)

    def time_until_expiry(self) -> int:
        """Get seconds until session expiry."""
        if self.is_expired():
            return 0
        return int((_as_utc(self.expires_at) - datetime.now(timezone.utc)).total_seconds())


class SessionManager:
    """Looks up provider-written sessions, with a short-lived in-memory cache."""

    def __init__(self, cache_seconds: Optional[int] = None):
        self._sessions: Dict[str, SimpleSession] = {}
        self._lock = Lock()
        self.cache_ttl = timedelta(
            seconds=settings.SESSION_CACHE_SECONDS if cache_seconds is None else cache_seconds
        )
        self._last_cleanup = datetime.now(timezone.utc)

    def _get_cached(self, token: str) -> Optional[SimpleSession]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None

            stale = datetime.now(timezone.utc) - session.cached_at > self.cache_ttl
            if stale or session.is_expired():
                del self._sessions[token]
                return None
            return session

    async def get_session(self, token: str) -> Optional[SimpleSession]:
        """
        Resolve a session token.

        Args:
            token: Session token from the bearer header or cookie

        Returns:
            The session, or None when unknown or expired
        """
        session = self._get_cached(token)
        if session is not None:
            return session

        async with db.session() as db_session:
            row = await db_session.scalar(
                select(SessionModel).where(SessionModel.session_id == token)
            )

        if row is None:
            logger.info("Session not found", token_prefix=token[:8] + "...")
            return None

        session = SimpleSession(
            session_id=row.session_id,
            user_id=row.user_id,
            expires_at=_as_utc(row.expires_at),
            email=row.email,
            name=row.name,
        )
        if session.is_expired():
            logger.info(
                "Session expired",
                session_id=token[:8] + "...",
                user_id=session.user_id,
                expired_at=session.expires_at.isoformat(),
            )
            return None

        if datetime.now(timezone.utc) - self._last_cleanup >= self.cache_ttl:
            self.cleanup_expired_sessions()

        with self._lock:
            self._sessions[token] = session

        logger.debug(
            "Session validated",
            session_id=token[:8] + "...",
            user_id=session.user_id,
        )
        return session

    def cleanup_expired_sessions(self) -> int:
        """
        Drop cache entries that are stale or whose session has expired.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = datetime.now(timezone.utc)
            expired_tokens = [
                token
                for token, session in self._sessions.items()
                if now - session.cached_at > self.cache_ttl or session.is_expired()
            ]

            for token in expired_tokens:
                del self._sessions[token]
            self._last_cleanup = now

        if expired_tokens:
            logger.debug("Expired sessions cleaned up", count=len(expired_tokens))
        return len(expired_tokens)

    def get_active_session_count(self) -> int:
        """Get count of cached sessions."""
        with self._lock:
            return len(self._sessions)

    def invalidate(self, token: str) -> bool:
        """Drop a token from the cache."""
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


# Global session manager instance
session_manager = SessionManager()

# Security scheme for session tokens; the cookie is the fallback
session_security = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
) -> Optional[str]:
    """Session token from the bearer header, else from the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_session(
    token: Optional[str] = Depends(get_session_token),
) -> Optional[SimpleSession]:
    """FastAPI dependency for routes that work with or without a session."""
    if not token:
        return None
    return await session_manager.get_session(token)


async def get_current_session(
    session: Optional[SimpleSession] = Depends(get_optional_session),
) -> SimpleSession:
    """
    FastAPI dependency requiring a valid session.

    Raises:
        UnauthorizedError: no token, or the token is unknown or expired
    """
    if session is None:
        raise UnauthorizedError()
    return session
