"""
Notely Backend - FastAPI Dependencies
=======================================

What:  Request-scoped dependencies shared by the route modules.

    require_user          → the authenticated User, or 401 before the handler runs
    get_identity_provider → the sign-in provider (overridden in tests)
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notely.config import settings
from notely.database import get_db_session
from notely.exceptions import NotAuthenticatedError
from notely.models.user import User
from notely.services.auth_gate import resolve_user
from notely.services.google_oauth import google_oauth
from notely.services.identity_base import IdentityProvider


async def require_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the caller from the session cookie or reject the request.

    Runs before the route handler, so an unauthenticated request never
    reaches the notes service.
    """
    user = await resolve_user(db, request.cookies.get(settings.session_cookie_name))
    if user is None:
        raise NotAuthenticatedError()
    return user


def get_identity_provider() -> IdentityProvider:
    return google_oauth
