"""
Notely Backend - Session Store
================================

What:  Durable binding of opaque session handles to local user ids.
How:   A handle is 32 random bytes (URL-safe). The `sessions` table stores
       only its SHA-256 digest, the user id and a fixed expiry
       (creation + SESSION_MAX_AGE_DAYS). Rows live in the same database as
       users and notes, so sessions survive restarts and are shared by every
       instance of the service.
Who:   The OAuth callback (create), the auth gate (resolve) and logout
       (destroy).

Cookie transport:
    The browser receives the handle signed with SESSION_SECRET
    (itsdangerous Signer, "<token>.<signature>"). A cookie whose signature
    does not verify is treated exactly like a missing cookie.

    Flags:
        HttpOnly              always
        Path=/                always
        Max-Age               session lifetime
        Secure                production only
        SameSite              "none" in production (separately hosted client),
                              "lax" in development
"""

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, Signer
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notely.config import settings
from notely.exceptions import StorageError
from notely.models.session import AuthSession

logger = logging.getLogger(__name__)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _signer() -> Signer:
    return Signer(settings.session_secret, salt="notely.session")


def sign_token(token: str) -> str:
    """Produce the cookie value for a session handle."""
    return _signer().sign(token).decode("utf-8")


def unsign_token(cookie_value: Optional[str]) -> Optional[str]:
    """Return the session handle inside a cookie value, or None if it was tampered with."""
    if not cookie_value:
        return None
    try:
        return _signer().unsign(cookie_value).decode("utf-8")
    except BadSignature:
        return None


def session_cookie_params() -> Dict[str, Any]:
    """Keyword arguments for Response.set_cookie / delete_cookie."""
    return {
        "httponly": True,
        "path": "/",
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
    }


class SessionStore:
    """Owns Session lifetime: create on login, destroy on logout, ignore after expiry."""

    async def create(self, db: AsyncSession, user_id: uuid.UUID, commit: bool = True) -> str:
        """
        Bind a fresh handle to `user_id` and return the raw handle.

        Expired rows are purged in the same transaction, so the table does
        not grow without bound.
        With commit=False the row is only flushed and the caller commits.
        """
        token = secrets.token_urlsafe(32)
        now = datetime.now(timezone.utc)
        try:
            await self._delete_expired(db, now)
            db.add(
                AuthSession(
                    id=_digest(token),
                    user_id=user_id,
                    created_at=now,
                    expires_at=now + settings.session_lifetime,
                )
            )
            if commit:
                await db.commit()
            else:
                await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating session: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not complete sign-in. Please try again.",
                context={"user_id": str(user_id)},
            )
        logger.info("Session created for user %s", user_id)
        return token

    async def resolve(self, db: AsyncSession, token: Optional[str]) -> Optional[uuid.UUID]:
        """Return the bound user id, or None if the handle is unknown or expired."""
        if not token:
            return None
        now = datetime.now(timezone.utc)
        try:
            result = await db.execute(
                select(AuthSession.user_id).where(
                    AuthSession.id == _digest(token),
                    AuthSession.expires_at > now,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error resolving session: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})

    async def destroy(
        self, db: AsyncSession, token: Optional[str], commit: bool = True
    ) -> None:
        """Remove the binding. Destroying an absent handle is not an error."""
        if not token:
            return
        try:
            await db.execute(
                delete(AuthSession)
                .where(AuthSession.id == _digest(token))
                .execution_options(synchronize_session=False)
            )
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error destroying session: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete every expired session; returns how many rows were removed."""
        try:
            removed = await self._delete_expired(db, datetime.now(timezone.utc))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error purging sessions: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed

    async def _delete_expired(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(
            delete(AuthSession)
            .where(AuthSession.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


session_store = SessionStore()
