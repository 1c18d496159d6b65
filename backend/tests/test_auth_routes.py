"""
Notely Backend - Google Sign-In Route Tests
=============================================

What:  /auth/google and /auth/google/callback with a fake identity provider.

What we test:
    ✅ Login redirects to the provider and sets a state cookie
    ✅ A good callback creates the user and a session, sets the cookie and
       redirects to the client's notes view
    ✅ Repeat logins reuse the same user
    ✅ Every kind of callback failure redirects with ?error=auth and creates
       nothing
    ✅ Cookie flags in development and production
"""

from typing import Optional
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest

from notely.config import settings
from notely.exceptions import AuthFailedError, StorageError, UpstreamError
from notely.models.session import AuthSession
from notely.models.user import User
from notely.routes import auth

STATE = "test-state-value"


def _set_cookie(response, name: str) -> Optional[str]:
    """The raw Set-Cookie header for `name`, or None."""
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


def _cookie_value(header: str) -> str:
    return header.split(";", 1)[0].split("=", 1)[1]


def _flags(header: str) -> str:
    """Cookie attributes only, lowercased (the value itself is excluded)."""
    return header.split(";", 1)[1].lower()


def _state_cookie(state: str = STATE) -> dict:
    return {"Cookie": f"{settings.oauth_state_cookie_name}={state}"}


async def _callback(client, params: dict, headers: Optional[dict] = None):
    return await client.get(
        "/auth/google/callback",
        params=params,
        headers=_state_cookie() if headers is None else headers,
    )


class TestLoginRedirect:

    @pytest.mark.asyncio
    async def test_redirects_to_provider_with_state(self, test_client):
        response = await test_client.get("/auth/google")

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "idp.test"

        state = parse_qs(location.query)["state"][0]
        cookie = _set_cookie(response, settings.oauth_state_cookie_name)
        assert cookie is not None
        assert _cookie_value(cookie) == state
        assert "httponly" in _flags(cookie)

    @pytest.mark.asyncio
    async def test_state_is_fresh_per_login(self, test_client):
        first = await test_client.get("/auth/google")
        second = await test_client.get("/auth/google")
        assert first.headers["location"] != second.headers["location"]


class TestCallbackSuccess:

    @pytest.mark.asyncio
    async def test_first_login_creates_user_and_session(
        self, test_client, fake_idp, count_rows
    ):
        response = await _callback(test_client, {"code": "good-code", "state": STATE})

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.frontend_origin}/notes"
        assert fake_idp.exchanged_codes == ["good-code"]
        assert await count_rows(User) == 1
        assert await count_rows(AuthSession) == 1

        cookie = _set_cookie(response, settings.session_cookie_name)
        assert cookie is not None
        flags = _flags(cookie)
        assert "httponly" in flags
        assert "path=/" in flags
        assert "samesite=lax" in flags
        assert "secure" not in flags
        assert f"max-age={int(settings.session_lifetime.total_seconds())}" in flags

    @pytest.mark.asyncio
    async def test_session_cookie_opens_the_notes_api(self, test_client):
        response = await _callback(test_client, {"code": "good-code", "state": STATE})
        value = _cookie_value(_set_cookie(response, settings.session_cookie_name))

        notes = await test_client.get(
            "/api/notes", headers={"Cookie": f"{settings.session_cookie_name}={value}"}
        )

        assert notes.status_code == 200
        assert notes.json() == []

    @pytest.mark.asyncio
    async def test_repeat_login_reuses_user(self, test_client, db_session, count_rows):
        await _callback(test_client, {"code": "first", "state": STATE})
        await _callback(test_client, {"code": "second", "state": STATE})

        assert await count_rows(User) == 1
        user = (await db_session.execute(User.__table__.select())).one()
        assert user.google_id == "google-sub-ada"
        assert user.display_name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_relogin_replaces_the_previous_session(self, test_client, count_rows):
        first = await _callback(test_client, {"code": "first", "state": STATE})
        old_value = _cookie_value(_set_cookie(first, settings.session_cookie_name))
        old_cookie = f"{settings.session_cookie_name}={old_value}"

        headers = {"Cookie": f"{old_cookie}; {settings.oauth_state_cookie_name}={STATE}"}
        second = await _callback(test_client, {"code": "second", "state": STATE}, headers)

        assert second.status_code == 302
        assert await count_rows(AuthSession) == 1
        replay = await test_client.get("/api/notes", headers={"Cookie": old_cookie})
        assert replay.status_code == 401

    @pytest.mark.asyncio
    async def test_production_cookie_flags(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")

        response = await _callback(test_client, {"code": "good-code", "state": STATE})

        flags = _flags(_set_cookie(response, settings.session_cookie_name))
        assert "secure" in flags
        assert "samesite=none" in flags
        assert "httponly" in flags


class TestCallbackFailure:

    async def _assert_failed(self, response, count_rows):
        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.frontend_origin}/?error=auth"
        assert _set_cookie(response, settings.session_cookie_name) is None
        assert await count_rows(User) == 0
        assert await count_rows(AuthSession) == 0

    @pytest.mark.asyncio
    async def test_provider_error_parameter(self, test_client, fake_idp, count_rows):
        response = await _callback(test_client, {"error": "access_denied", "state": STATE})
        await self._assert_failed(response, count_rows)
        assert fake_idp.exchanged_codes == []

    @pytest.mark.asyncio
    async def test_missing_code(self, test_client, fake_idp, count_rows):
        response = await _callback(test_client, {"state": STATE})
        await self._assert_failed(response, count_rows)
        assert fake_idp.exchanged_codes == []

    @pytest.mark.asyncio
    async def test_state_mismatch(self, test_client, fake_idp, count_rows):
        response = await _callback(test_client, {"code": "good-code", "state": "forged"})
        await self._assert_failed(response, count_rows)
        assert fake_idp.exchanged_codes == []

    @pytest.mark.asyncio
    async def test_missing_state_cookie(self, test_client, fake_idp, count_rows):
        response = await _callback(test_client, {"code": "good-code", "state": STATE}, headers={})
        await self._assert_failed(response, count_rows)
        assert fake_idp.exchanged_codes == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AuthFailedError(reason="invalid_grant"), UpstreamError()],
        ids=["rejected", "unreachable"],
    )
    async def test_exchange_failure(self, test_client, fake_idp, count_rows, error):
        fake_idp.error = error

        response = await _callback(test_client, {"code": "bad-code", "state": STATE})

        await self._assert_failed(response, count_rows)
        assert fake_idp.exchanged_codes == ["bad-code"]

    @pytest.mark.asyncio
    async def test_session_write_failure_leaves_no_user(
        self, test_client, fake_idp, count_rows, monkeypatch
    ):
        monkeypatch.setattr(
            auth.session_store,
            "create",
            AsyncMock(side_effect=StorageError(context={"cause": "disk full"})),
        )

        response = await _callback(test_client, {"code": "good-code", "state": STATE})

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert _set_cookie(response, settings.session_cookie_name) is None
        assert fake_idp.exchanged_codes == ["good-code"]
        assert await count_rows(User) == 0
        assert await count_rows(AuthSession) == 0
