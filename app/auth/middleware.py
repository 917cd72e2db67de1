# =============================================================================
# app/auth/middleware.py - Session Refresh Gate
# =============================================================================
# Runs before every request:
# 1. Installs a ResponseCookieJar on request.state.session_cookies
# 2. On configured path prefixes, validates the session with Supabase Auth
#    (refreshing tokens when needed) through a bridge that writes into the jar
# 3. Forwards refreshed cookies to the route (rewritten Cookie header)
# 4. Records the outcome on request.state for the page guard to reuse
# 5. Applies the jar to the route's response, error responses included
#
# A failed validation never blocks the request: the session cookies the request
# carried are deleted and the route sees an anonymous request. Redirects are
# decided by the page guard, not here.
# =============================================================================

import logging
from typing import Iterable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.auth.cookies import RequestCookieBridge, ResponseCookieJar, session_cookie_names
from app.auth.guard import AuthGuard, Authenticated, Unauthenticated, remember_check
from app.auth.session import describe_auth_error
from app.exceptions import unhandled_exception_handler

logger = logging.getLogger(__name__)

JAR_STATE_KEY = "session_cookies"


def path_matches(path: str, prefixes: Iterable[str]) -> bool:
    """
    True if `path` is one of the prefixes or sits below one.

    Example:
        path_matches("/account/billing", ["/account"])  # True
        path_matches("/accounting", ["/account"])       # False
    """
    for prefix in prefixes:
        prefix = prefix.rstrip("/") or "/"
        if prefix == "/" or path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def get_cookie_jar(request: Request) -> ResponseCookieJar:
    """The request's jar; created on demand when the gate isn't installed."""
    jar = getattr(request.state, JAR_STATE_KEY, None)
    if jar is None:
        jar = ResponseCookieJar()
        setattr(request.state, JAR_STATE_KEY, jar)
    return jar


def rewrite_cookie_header(request: Request, cookies: dict[str, str]) -> None:
    """Replace the Cookie header the downstream route will see."""
    headers = [(k, v) for k, v in request.scope["headers"] if k != b"cookie"]
    if cookies:
        value = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", value.encode("latin-1")))
    request.scope["headers"] = headers


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """
    Keeps the cookie session fresh on the configured path prefixes.

    The session client factory is read from app.state.session_client_factory
    on each request, so tests can swap it after the app is built.

    Args:
        app: ASGI app
        prefixes: Path prefixes that get a session round trip
        cookie_name: Base name of the session cookie (sb-<ref>-auth-token)
    """

    def __init__(self, app: ASGIApp, prefixes: Iterable[str], cookie_name: str):
        super().__init__(app)
        self.prefixes = list(prefixes)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        jar = get_cookie_jar(request)

        if path_matches(request.url.path, self.prefixes):
            await self._refresh(request, jar)

        try:
            response = await call_next(request)
        except Exception as e:
            # Errors raised past the route's handlers would otherwise be
            # rendered outside this middleware, without the jar.
            response = await unhandled_exception_handler(request, e)

        jar.apply(response)
        return response

    async def _refresh(self, request: Request, jar: ResponseCookieJar) -> None:
        factory = request.app.state.session_client_factory
        bridge = RequestCookieBridge.from_request(request, sink=jar)

        try:
            client = factory(bridge)
        except Exception as e:
            logger.error(f"Could not build session client: {describe_auth_error(e)}")
            result = Unauthenticated(reason="session_error")
        else:
            result = await run_in_threadpool(AuthGuard(client).check)

        if isinstance(result, Authenticated):
            logger.debug(f"Session valid for user {result.user.id} on {request.url.path}")
        elif result.reason == "session_error":
            logger.warning(f"Session refresh failed on {request.url.path}, clearing cookies")
            stale = session_cookie_names(request.cookies, self.cookie_name)
            if stale:
                jar.delete(stale, {"path": "/"})

        remember_check(request, result)

        if len(jar):
            rewrite_cookie_header(request, jar.merge_into(request.cookies))
