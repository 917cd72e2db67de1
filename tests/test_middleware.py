# =============================================================================
# tests/test_middleware.py - Session Refresh Gate Tests
# =============================================================================
# Tests for app/auth/middleware.py on a minimal app whose routes echo the
# cookies they receive.
#
# Run with: pytest tests/test_middleware.py -v
# =============================================================================

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from supabase_auth.errors import AuthApiError

from app.auth.cookies import decode_value
from app.auth.guard import CHECK_STATE_KEY, Authenticated
from app.auth.middleware import SessionRefreshMiddleware, path_matches
from tests.conftest import (
    SESSION_COOKIE,
    FakeAuthBackend,
    FakeSessionClientFactory,
    make_user,
    session_json,
)


@pytest.fixture
def backend():
    return FakeAuthBackend()


@pytest.fixture
def gate_client(backend):
    app = FastAPI()
    app.state.session_client_factory = FakeSessionClientFactory(backend)
    app.add_middleware(
        SessionRefreshMiddleware,
        prefixes=["/account", "/auth"],
        cookie_name=SESSION_COOKIE,
    )

    @app.get("/account/echo")
    async def account_echo(request: Request):
        return dict(request.cookies)

    @app.get("/public/echo")
    async def public_echo(request: Request):
        return dict(request.cookies)

    @app.get("/account/check")
    async def account_check(request: Request):
        result = getattr(request.state, CHECK_STATE_KEY, None)
        return {"checked": result is not None, "signed_in": isinstance(result, Authenticated)}

    @app.get("/account/boom")
    async def account_boom():
        raise RuntimeError("handler bug")

    return TestClient(app)


def set_cookie_headers(response) -> dict[str, str]:
    """Set-Cookie headers keyed by cookie name."""
    headers = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        headers[name] = header
    return headers


class TestPathMatches:
    """Tests for prefix matching."""

    def test_exact_and_nested(self):
        assert path_matches("/account", ["/account"])
        assert path_matches("/account/billing", ["/account"])

    def test_segment_boundary(self):
        assert not path_matches("/accounting", ["/account"])

    def test_no_prefixes(self):
        assert not path_matches("/account", [])


class TestSessionRefreshMiddleware:
    """Tests for the refresh protocol."""

    def test_valid_session_passes_through(self, backend, gate_client):
        backend.user = make_user()
        gate_client.cookies.set(SESSION_COOKIE, "base64-abc")

        response = gate_client.get("/account/echo")

        assert response.status_code == 200
        assert response.json()[SESSION_COOKIE] == "base64-abc"
        assert backend.count("get_user") == 1
        assert response.headers.get_list("set-cookie") == []

    def test_refreshed_cookies_reach_handler_and_response(self, backend, gate_client):
        backend.user = make_user()
        backend.refreshed_session = session_json(access_token="access-2")
        gate_client.cookies.set(SESSION_COOKIE, "base64-stale")

        response = gate_client.get("/account/echo")

        seen = response.json()[SESSION_COOKIE]
        assert decode_value(seen) == backend.refreshed_session
        cookie = set_cookie_headers(response)[SESSION_COOKIE]
        assert seen in cookie
        assert "HttpOnly" in cookie
        assert "Path=/" in cookie

    def test_failure_deletes_session_cookies_and_continues(self, backend, gate_client):
        backend.error = AuthApiError("Invalid Refresh Token", 400, "refresh_token_not_found")
        gate_client.cookies.set(f"{SESSION_COOKIE}.0", "base64-part0")
        gate_client.cookies.set(f"{SESSION_COOKIE}.1", "part1")
        gate_client.cookies.set("sb-access-token", "legacy")
        gate_client.cookies.set("theme", "dark")

        response = gate_client.get("/account/echo")

        assert response.status_code == 200
        assert response.json() == {"theme": "dark"}
        deleted = set_cookie_headers(response)
        for name in (f"{SESSION_COOKIE}.0", f"{SESSION_COOKIE}.1", "sb-access-token"):
            assert "Max-Age=0" in deleted[name]
        assert "theme" not in deleted

    def test_unexpected_error_is_treated_as_no_session(self, backend, gate_client):
        backend.error = RuntimeError("connection reset")
        gate_client.cookies.set(SESSION_COOKIE, "base64-abc")

        response = gate_client.get("/account/echo")

        assert response.status_code == 200
        assert "Max-Age=0" in set_cookie_headers(response)[SESSION_COOKIE]

    def test_no_session_is_not_an_error(self, backend, gate_client):
        response = gate_client.get("/account/echo")

        assert response.status_code == 200
        assert response.json() == {}
        assert response.headers.get_list("set-cookie") == []

    def test_non_matching_path_skips_round_trip(self, backend, gate_client):
        backend.user = make_user()
        gate_client.cookies.set(SESSION_COOKIE, "base64-abc")

        response = gate_client.get("/public/echo")

        assert response.status_code == 200
        assert backend.count("get_user") == 0
        assert response.json()[SESSION_COOKIE] == "base64-abc"

    def test_outcome_is_recorded_for_the_guard(self, backend, gate_client):
        backend.user = make_user()
        gate_client.cookies.set(SESSION_COOKIE, "base64-abc")

        response = gate_client.get("/account/check")

        assert response.json() == {"checked": True, "signed_in": True}
        assert backend.count("get_user") == 1

    def test_refreshed_cookies_survive_unexpected_error(self, backend, gate_client):
        backend.user = make_user()
        backend.refreshed_session = session_json(access_token="access-2")
        gate_client.cookies.set(SESSION_COOKIE, "base64-stale")

        response = gate_client.get("/account/boom")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        cookie = set_cookie_headers(response)[SESSION_COOKIE]
        assert "base64-stale" not in cookie
        assert "HttpOnly" in cookie

    def test_cookie_deletions_survive_unexpected_error(self, backend, gate_client):
        backend.error = AuthApiError("Invalid Refresh Token", 400, "refresh_token_not_found")
        gate_client.cookies.set(SESSION_COOKIE, "base64-stale")

        response = gate_client.get("/account/boom")

        assert response.status_code == 500
        assert "Max-Age=0" in set_cookie_headers(response)[SESSION_COOKIE]
