# =============================================================================
# app/auth/guard.py - Authenticated Page Guard
# =============================================================================
# Answers "who is making this request?" for routes that need a user.
#
# AuthGuard.check() returns a tagged result instead of redirecting; the caller
# decides what an anonymous request means:
# - require_user (pages): redirect to the login page
# - get_current_user (JSON API): 401
#
# Both run before the route touches the store or the billing provider.
#
# Usage:
#   @router.get("/account")
#   async def account(user: PageUser):
#       ...
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Annotated, Optional, Union

from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool

from app.auth.cookies import RequestCookieBridge
from app.auth.models import AuthUser
from app.auth.session import SessionClient, describe_auth_error
from app.exceptions import AuthenticationError, LoginRequiredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authenticated:
    user: AuthUser


@dataclass(frozen=True)
class Unauthenticated:
    reason: Optional[str] = None


GuardResult = Union[Authenticated, Unauthenticated]

# request.state attribute holding the GuardResult once the session was checked
CHECK_STATE_KEY = "session_check"


class AuthGuard:
    """
    Resolves the current user from the session client.

    Any failure of the session service counts as "no user"; it is logged,
    never raised.
    """

    def __init__(self, session_client: SessionClient):
        self.session_client = session_client

    def check(self) -> GuardResult:
        try:
            user = self.session_client.get_user()
        except Exception as e:
            logger.warning(f"Session check failed: {describe_auth_error(e)}")
            return Unauthenticated(reason="session_error")

        if user is None:
            return Unauthenticated(reason="no_session")
        return Authenticated(user=user)


# =============================================================================
# FastAPI Dependencies
# =============================================================================

def get_read_only_session_client(request: Request) -> SessionClient:
    """
    Session client whose cookie writes are dropped.

    Pages and JSON endpoints only read the session; the refresh gate has
    already written any refreshed cookies.
    """
    factory = request.app.state.session_client_factory
    return factory(RequestCookieBridge.from_request(request))


def remember_check(request: Request, result: GuardResult) -> None:
    setattr(request.state, CHECK_STATE_KEY, result)


def check_request(request: Request) -> GuardResult:
    """
    Session check for this request, run at most once.

    Reuses the refresh gate's result when the path is gated; otherwise asks
    the session service and remembers the answer.
    """
    result = getattr(request.state, CHECK_STATE_KEY, None)
    if result is None:
        result = AuthGuard(get_read_only_session_client(request)).check()
        remember_check(request, result)
    return result


async def require_user(request: Request) -> AuthUser:
    """
    Page guard: the signed-in user, or a redirect to the login page.

    Raises:
        LoginRequiredError: Rendered as 303 to LOGIN_PATH?next=<path>
    """
    result = await run_in_threadpool(check_request, request)
    if isinstance(result, Authenticated):
        return result.user

    settings = request.app.state.settings
    raise LoginRequiredError(settings.LOGIN_PATH, next_path=request.url.path)


async def get_current_user(request: Request) -> AuthUser:
    """
    API guard: the signed-in user, or 401.

    Raises:
        AuthenticationError: If there is no valid session
    """
    result = await run_in_threadpool(check_request, request)
    if isinstance(result, Authenticated):
        return result.user
    raise AuthenticationError()


def authenticate(request: Request) -> AuthUser:
    """
    Resolve the user inside a handler, after its own input checks.

    Raises:
        AuthenticationError: If there is no valid session
    """
    result = check_request(request)
    if isinstance(result, Authenticated):
        return result.user
    raise AuthenticationError()


PageUser = Annotated[AuthUser, Depends(require_user)]
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
