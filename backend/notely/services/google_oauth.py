"""
Notely Backend - Google OAuth2 Client
=======================================

What:  IdentityProvider implementation for Google sign-in.
How:   Standard authorization-code flow over httpx:
       1. Redirect the browser to Google's authorization endpoint
       2. POST the returned code to the token endpoint
       3. GET the OpenID userinfo endpoint with the access token
Who:   Used by the /auth/google routes through get_identity_provider().

Failure mapping:
    Token endpoint answers non-2xx       → AuthFailedError
    Userinfo missing "sub" / bad JSON    → AuthFailedError
    Connect error / timeout              → retried with tenacity, then UpstreamError

Only transport-level failures are retried. A rejected code will be rejected
again, so retrying it would only delay the error redirect.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from notely.config import settings
from notely.exceptions import AuthFailedError, UpstreamError
from notely.schemas.auth import IdentityProfile
from notely.services.identity_base import IdentityProvider

logger = logging.getLogger(__name__)


class GoogleOAuthClient(IdentityProvider):
    """
    Google OAuth2 / OpenID Connect client.

    Requests the `openid profile email` scopes so the userinfo response
    carries `sub`, `name` and `email`.
    """

    SCOPES = ("openid", "profile", "email")

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.google_client_secret
        )
        self.redirect_uri = redirect_uri or settings.google_callback_url
        self.authorize_endpoint = settings.google_authorize_url
        self.token_endpoint = settings.google_token_url
        self.userinfo_endpoint = settings.google_userinfo_url
        self.max_attempts = max_attempts or settings.idp_retry_max_attempts
        self.min_wait = settings.idp_retry_min_wait if min_wait is None else min_wait
        self.max_wait = settings.idp_retry_max_wait if max_wait is None else max_wait
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    async def exchange(self, code: str) -> IdentityProfile:
        if not code:
            raise AuthFailedError(reason="missing authorization code")

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=settings.idp_timeout_seconds,
        ) as client:
            token_response = await self._send(
                client,
                "POST",
                self.token_endpoint,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
            if token_response.is_error:
                logger.warning(
                    "Google token exchange rejected: HTTP %d", token_response.status_code
                )
                raise AuthFailedError(
                    reason="token exchange rejected",
                    context={"status": token_response.status_code},
                )

            access_token = self._json(token_response).get("access_token")
            if not access_token:
                raise AuthFailedError(reason="token response missing access_token")

            userinfo_response = await self._send(
                client,
                "GET",
                self.userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if userinfo_response.is_error:
                logger.warning(
                    "Google userinfo request rejected: HTTP %d", userinfo_response.status_code
                )
                raise AuthFailedError(
                    reason="userinfo rejected",
                    context={"status": userinfo_response.status_code},
                )

        claims = self._json(userinfo_response)
        subject = claims.get("sub")
        if not subject:
            raise AuthFailedError(reason="userinfo missing subject")

        return IdentityProfile(
            subject=str(subject),
            display_name=claims.get("name"),
            email=claims.get("email"),
        )

    async def _send(
        self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Send one request, retrying connect errors and timeouts."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.min_wait, max=self.max_wait)
                + wait_random(0, self.min_wait),
                before_sleep=before_sleep_log(logger, logging.WARNING),
            ):
                with attempt:
                    return await client.request(method, url, **kwargs)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "Google %s %s failed after %d attempts: %s",
                method,
                url,
                self.max_attempts,
                last,
            )
            raise UpstreamError(
                context={
                    "url": url,
                    "attempts": self.max_attempts,
                    "error_type": type(last).__name__ if last else None,
                },
            ) from last
        raise UpstreamError(context={"url": url})

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            raise AuthFailedError(reason="malformed provider response")
        if not isinstance(payload, dict):
            raise AuthFailedError(reason="malformed provider response")
        return payload


google_oauth = GoogleOAuthClient()
