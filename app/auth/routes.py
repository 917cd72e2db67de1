# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Cookie-session auth flows backed by Supabase Auth:
# - POST /auth/login, /auth/signup, /auth/forgot-password, /auth/reset-password
# - GET  /auth/callback (email links: confirm signup, password recovery)
# - POST /auth/signout
# - GET  /auth/me
#
# Session cookies written here go through the request's cookie jar; the
# refresh gate applies them to the response.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse
from supabase_auth.errors import AuthApiError, AuthError

from app.auth.cookies import session_cookie_names
from app.auth.guard import CurrentUser
from app.auth.middleware import get_cookie_jar
from app.auth.models import (
    AuthResult,
    CredentialsRequest,
    ForgotPasswordRequest,
    PasswordUpdateRequest,
    SignupRequest,
    UserResponse,
)
from app.auth.session import SessionClient, describe_auth_error
from app.dependencies import SettingsDep, WritableSessionClientDep
from app.exceptions import AuthenticationError, SessionServiceError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

DEFAULT_NEXT_PATH = "/account"
AUTH_CODE_ERROR_PATH = "/auth/auth-code-error"


def safe_next_path(value: Optional[str], default: str = DEFAULT_NEXT_PATH) -> str:
    """
    Only accept same-site relative paths as redirect targets.

    Example:
        safe_next_path("/account/billing")   # "/account/billing"
        safe_next_path("https://evil.test")  # "/account"
        safe_next_path("//evil.test")        # "/account"
    """
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return default
    return value


def _user_response(user) -> UserResponse:
    return UserResponse(**user.model_dump())


def update_password(client: SessionClient, password: str) -> UserResponse:
    """
    Set a new password for the session's user.

    Shared by the reset flow and the account security page.
    """
    try:
        user = client.update_password(password)
    except AuthApiError as e:
        if e.status and e.status < 500:
            raise ValidationError(e.message, code="PASSWORD_UPDATE_FAILED")
        logger.error(f"Password update failed: {describe_auth_error(e)}")
        raise SessionServiceError()
    except AuthError as e:
        logger.error(f"Password update failed: {describe_auth_error(e)}")
        raise SessionServiceError()

    logger.info(f"Password updated for user {user.id}")
    return _user_response(user)


# =============================================================================
# Pages
# =============================================================================

@router.get("/login")
async def login_page(next_path: Optional[str] = Query(None, alias="next")) -> dict:
    """Login page data: where to go after signing in."""
    return {"page": "login", "next": safe_next_path(next_path)}


@router.get("/auth-code-error")
async def auth_code_error_page() -> dict:
    """Shown when an email link is invalid or expired."""
    return {
        "page": "auth-code-error",
        "error": "The link is invalid or has expired",
        "code": "AUTH_CODE_ERROR",
    }


# =============================================================================
# Actions
# =============================================================================

@router.post("/login", response_model=AuthResult)
def login(body: CredentialsRequest, client: WritableSessionClientDep) -> AuthResult:
    """
    Sign in with email and password.

    Writes the session cookies on success.

    Raises:
        401: Wrong credentials or unconfirmed email
    """
    try:
        user = client.sign_in_with_password(body.email, body.password)
    except AuthApiError as e:
        if e.status and e.status < 500:
            logger.info(f"Login rejected: {describe_auth_error(e)}")
            raise AuthenticationError(e.message)
        logger.error(f"Login failed: {describe_auth_error(e)}")
        raise SessionServiceError()
    except AuthError as e:
        logger.error(f"Login failed: {describe_auth_error(e)}")
        raise SessionServiceError()

    return AuthResult(user=_user_response(user))


@router.post("/signup", response_model=AuthResult)
def signup(
    body: SignupRequest,
    client: WritableSessionClientDep,
    settings: SettingsDep,
) -> AuthResult:
    """
    Create an account.

    When email confirmation is on, no session is issued and
    `confirmation_required` is true; the link lands on /auth/callback.
    """
    redirect_to = f"{settings.SITE_URL.rstrip('/')}/auth/callback"
    try:
        user, confirmation_required = client.sign_up(body.email, body.password, redirect_to)
    except AuthApiError as e:
        if e.status and e.status < 500:
            raise ValidationError(e.message, code="SIGNUP_FAILED")
        logger.error(f"Signup failed: {describe_auth_error(e)}")
        raise SessionServiceError()
    except AuthError as e:
        logger.error(f"Signup failed: {describe_auth_error(e)}")
        raise SessionServiceError()

    return AuthResult(
        user=_user_response(user) if user else None,
        confirmation_required=confirmation_required,
    )


@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordRequest,
    client: WritableSessionClientDep,
    settings: SettingsDep,
) -> dict:
    """
    Send a password reset email.

    Always answers 200 so the endpoint can't be used to probe for accounts.
    """
    redirect_to = f"{settings.SITE_URL.rstrip('/')}/auth/callback?next=/auth/reset-password"
    try:
        client.reset_password_for_email(body.email, redirect_to)
    except AuthError as e:
        logger.warning(f"Password reset email failed: {describe_auth_error(e)}")

    return {
        "success": True,
        "message": "If an account exists for that email, a reset link has been sent",
    }


@router.post("/reset-password", response_model=UserResponse)
def reset_password(
    body: PasswordUpdateRequest,
    user: CurrentUser,
    client: WritableSessionClientDep,
) -> UserResponse:
    """
    Set a new password after following a recovery link.

    Raises:
        401: If the recovery session is missing or expired
    """
    return update_password(client, body.password)


@router.get("/callback")
def auth_callback(
    client: WritableSessionClientDep,
    code: Optional[str] = None,
    next_path: Optional[str] = Query(None, alias="next"),
) -> RedirectResponse:
    """
    Exchange an auth code from an email link for a session.

    Redirects to `next` (relative paths only) on success, otherwise to
    /auth/auth-code-error.
    """
    if not code:
        return RedirectResponse(url=AUTH_CODE_ERROR_PATH, status_code=303)

    try:
        user = client.exchange_code_for_session(code)
    except AuthError as e:
        logger.warning(f"Auth code exchange failed: {describe_auth_error(e)}")
        return RedirectResponse(url=AUTH_CODE_ERROR_PATH, status_code=303)

    logger.info(f"Auth code exchanged for user {user.id}")
    return RedirectResponse(url=safe_next_path(next_path), status_code=303)


@router.post("/signout")
def signout(
    request: Request,
    client: WritableSessionClientDep,
    settings: SettingsDep,
) -> RedirectResponse:
    """Sign out, clear the session cookies and go home."""
    try:
        client.sign_out()
    except AuthError as e:
        logger.warning(f"Sign out failed, clearing cookies anyway: {describe_auth_error(e)}")

    stale = session_cookie_names(request.cookies, settings.session_cookie_name)
    if stale:
        get_cookie_jar(request).delete(stale, {"path": "/"})

    return RedirectResponse(url="/", status_code=303)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: CurrentUser) -> UserResponse:
    """
    Get the current authenticated user.

    Raises:
        401: If not authenticated
    """
    return _user_response(user)
