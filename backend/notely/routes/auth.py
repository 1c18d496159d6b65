"""
Notely Backend - Google Sign-In Routes
========================================

What:  GET /auth/google, GET /auth/google/callback, GET /auth/logout.
How:   Thin handlers around the identity provider, UserDirectory and
       SessionStore. Every outcome except a storage failure is a 302 back to
       the browser client.

Callback outcomes:
    success → upsert user, create session, set session cookie,
              redirect to <FRONTEND_ORIGIN>/notes
    failure → redirect to <FRONTEND_ORIGIN>/?error=auth, no cookie,
              no user and no session created

A provider `error` parameter, a missing code, a state mismatch, a rejected
exchange and an unreachable provider are all treated as the same failure.
A storage failure after a successful exchange is a 500; the user and session
writes share one transaction, so neither is left behind.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notely.config import settings
from notely.database import get_db_session
from notely.dependencies import get_identity_provider
from notely.exceptions import AuthFailedError, StorageError, UpstreamError
from notely.services.identity_base import IdentityProvider
from notely.services.session_service import (
    session_cookie_params,
    session_store,
    sign_token,
    unsign_token,
)
from notely.services.user_service import user_directory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# The state cookie only needs to survive the round trip through Google
_STATE_COOKIE_MAX_AGE = 600
_STATE_COOKIE_PATH = "/auth"


def _state_cookie_params() -> dict:
    params = session_cookie_params()
    params["path"] = _STATE_COOKIE_PATH
    return params


def _states_match(received: Optional[str], expected: Optional[str]) -> bool:
    if not received or not expected:
        return False
    return secrets.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def _failure_redirect() -> RedirectResponse:
    response = RedirectResponse(f"{settings.frontend_origin}/?error=auth", status_code=302)
    response.delete_cookie(settings.oauth_state_cookie_name, **_state_cookie_params())
    return response


@router.get(
    "/google",
    status_code=302,
    summary="Start Google sign-in",
    description="Redirects the browser to Google's consent screen (scopes: profile, email).",
)
async def google_login(
    idp: IdentityProvider = Depends(get_identity_provider),
) -> RedirectResponse:
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(idp.authorization_url(state), status_code=302)
    response.set_cookie(
        settings.oauth_state_cookie_name,
        state,
        max_age=_STATE_COOKIE_MAX_AGE,
        **_state_cookie_params(),
    )
    return response


@router.get(
    "/google/callback",
    status_code=302,
    summary="Google sign-in callback",
    description=(
        "Exchanges the authorization code, creates the local user on first login, "
        "starts a session and redirects to the client's notes view."
    ),
)
async def google_callback(
    request: Request,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
    idp: IdentityProvider = Depends(get_identity_provider),
) -> RedirectResponse:
    try:
        if error:
            raise AuthFailedError(reason=f"provider returned error '{error}'")
        if not code:
            raise AuthFailedError(reason="missing authorization code")
        if not _states_match(state, request.cookies.get(settings.oauth_state_cookie_name)):
            raise AuthFailedError(reason="state mismatch")
        profile = await idp.exchange(code)
    except AuthFailedError as e:
        logger.warning("Google sign-in failed: %s", e.reason)
        return _failure_redirect()
    except UpstreamError as e:
        logger.error("Google sign-in failed, provider unreachable: %s", e.context)
        return _failure_redirect()

    # User, old-session removal and new session commit together: a failure
    # anywhere below rolls all of them back
    user = await user_directory.upsert_by_external_id(
        db,
        external_id=profile.subject,
        display_name=profile.display_name,
        email=profile.email,
        commit=False,
    )

    # Do not carry a pre-login session over into the new login
    previous = unsign_token(request.cookies.get(settings.session_cookie_name))
    if previous:
        await session_store.destroy(db, previous, commit=False)

    user_id = user.id
    token = await session_store.create(db, user_id, commit=False)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Database error completing sign-in: %s", str(e), exc_info=True)
        raise StorageError(
            message="Could not complete sign-in. Please try again.",
            context={"user_id": str(user_id)},
        )

    response = RedirectResponse(f"{settings.frontend_origin}/notes", status_code=302)
    response.set_cookie(
        settings.session_cookie_name,
        sign_token(token),
        max_age=int(settings.session_lifetime.total_seconds()),
        **session_cookie_params(),
    )
    response.delete_cookie(settings.oauth_state_cookie_name, **_state_cookie_params())
    logger.info("User %s signed in", user_id)
    return response


@router.get(
    "/logout",
    status_code=302,
    summary="Sign out",
    description="Destroys the current session (if any) and redirects to the client.",
)
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    token = unsign_token(request.cookies.get(settings.session_cookie_name))
    await session_store.destroy(db, token)

    response = RedirectResponse(settings.frontend_origin, status_code=302)
    response.delete_cookie(settings.session_cookie_name, **session_cookie_params())
    return response
