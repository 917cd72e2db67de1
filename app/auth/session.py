# =============================================================================
# app/auth/session.py - Per-Request Supabase Session Client
# =============================================================================
# Wraps the Supabase auth client for one request. Its storage is the cookie
# bridge, so:
# - reading the session reads cookies
# - a token refresh, login or logout writes cookies through the bridge
#   (into the request's ResponseCookieJar when the bridge has a sink)
#
# The factory is built once by create_app() and owns the HTTP connection pool
# shared by all per-request auth clients.
#
# Usage:
#   bridge = RequestCookieBridge.from_request(request)
#   user = factory(bridge).get_user()
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import httpx
from supabase_auth import SyncGoTrueClient
from supabase_auth.errors import AuthError

from app.auth.cookies import CookieBridge, CookieStorage, default_cookie_options
from app.auth.models import AuthUser

logger = logging.getLogger(__name__)


class SessionClient:
    """
    Session operations for one request.

    Methods raise supabase_auth's AuthError on failures from the auth service;
    callers decide whether that means "no session" or an error response.
    """

    def __init__(self, auth: SyncGoTrueClient, bridge: CookieBridge):
        self.auth = auth
        self.bridge = bridge

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def get_user(self) -> AuthUser | None:
        """
        Validate the session with Supabase Auth and return its user.

        Refreshes the access token first when it is close to expiry; the
        refreshed session is written back through the bridge.

        Returns:
            AuthUser, or None when the request carries no session
        """
        response = self.auth.get_user()
        if response is None or response.user is None:
            return None
        return AuthUser.from_supabase(response.user)

    # -------------------------------------------------------------------------
    # Auth Flows
    # -------------------------------------------------------------------------

    def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        response = self.auth.sign_in_with_password({"email": email, "password": password})
        logger.info(f"User signed in: {response.user.id}")
        return AuthUser.from_supabase(response.user)

    def sign_up(
        self,
        email: str,
        password: str,
        redirect_to: str,
    ) -> tuple[AuthUser | None, bool]:
        """
        Create an account.

        Returns:
            (user, confirmation_required). No session is issued until the
            email is confirmed when confirmations are enabled.
        """
        response = self.auth.sign_up({
            "email": email,
            "password": password,
            "options": {"email_redirect_to": redirect_to},
        })
        user = AuthUser.from_supabase(response.user) if response.user else None
        return user, response.session is None

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        self.auth.reset_password_for_email(email, {"redirect_to": redirect_to})

    def update_password(self, password: str) -> AuthUser:
        response = self.auth.update_user({"password": password})
        return AuthUser.from_supabase(response.user)

    def exchange_code_for_session(self, code: str) -> AuthUser:
        """Trade an auth code (PKCE) for a session; the verifier comes from cookies."""
        response = self.auth.exchange_code_for_session({"auth_code": code})
        return AuthUser.from_supabase(response.user)

    def sign_out(self) -> None:
        self.auth.sign_out()


class SessionClientFactory:
    """
    Builds a SessionClient per request.

    Example:
        factory = SessionClientFactory.from_settings(settings)
        client = factory(RequestCookieBridge.from_request(request, sink=jar))
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        cookie_name: str,
        cookie_options: dict[str, Any],
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.auth_url = f"{supabase_url.rstrip('/')}/auth/v1"
        self.cookie_name = cookie_name
        self.cookie_options = cookie_options
        self._headers = {"apiKey": anon_key, "Authorization": f"Bearer {anon_key}"}
        self._http = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Any) -> SessionClientFactory:
        return cls(
            supabase_url=settings.SUPABASE_URL,
            anon_key=settings.SUPABASE_ANON_KEY,
            cookie_name=settings.session_cookie_name,
            cookie_options=default_cookie_options(
                max_age=settings.SESSION_COOKIE_MAX_AGE,
                secure=settings.cookie_secure,
            ),
            timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
        )

    def __call__(self, bridge: CookieBridge) -> SessionClient:
        auth = SyncGoTrueClient(
            url=self.auth_url,
            headers=dict(self._headers),
            storage_key=self.cookie_name,
            storage=CookieStorage(bridge, self.cookie_options),
            auto_refresh_token=False,
            persist_session=True,
            flow_type="pkce",
            http_client=self._http,
        )
        return SessionClient(auth, bridge)

    def close(self) -> None:
        self._http.close()


def describe_auth_error(exc: Exception) -> str:
    """Short, log-safe description of an auth failure."""
    if isinstance(exc, AuthError):
        code = getattr(exc, "code", None)
        return f"{type(exc).__name__}({code}): {exc.message}"
    return f"{type(exc).__name__}: {exc}"
