# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error leaves the app as JSON: {"error": ..., "code": ...}.
# Upstream failures carry a generic message; the detail is logged server-side.
# =============================================================================

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse

logger = logging.getLogger(__name__)


class PortalException(Exception):
    """
    Base exception for the Account Portal API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "PORTAL_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Validation Exceptions (400)
# =============================================================================

class ValidationError(PortalException):
    """Raised when request fields are missing or malformed."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", **kwargs):
        super().__init__(message=message, code=code, status_code=400, **kwargs)


class MissingFieldsError(ValidationError):
    """Raised when required request fields are absent."""

    def __init__(self, fields: list[str]):
        super().__init__(
            message=f"Missing required fields: {' and '.join(fields)} are required",
            code="MISSING_FIELDS",
            details={"fields": fields},
        )


class InvalidActionError(ValidationError):
    """Raised when a subscription action is not one we support."""

    def __init__(self, action: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid action. Must be one of: {', '.join(allowed)}",
            code="INVALID_ACTION",
            details={"action": action, "allowed": allowed},
        )


# =============================================================================
# Authentication Exceptions
# =============================================================================

class AuthenticationError(PortalException):
    """Raised when a JSON endpoint is called without a valid session."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            suggestion="Log in again to get a fresh session",
        )


class LoginRequiredError(PortalException):
    """Raised by page guards; turned into a redirect to the login page."""

    def __init__(self, login_path: str, next_path: str | None = None):
        super().__init__(
            message="Login required",
            code="LOGIN_REQUIRED",
            status_code=303,
        )
        self.login_path = login_path
        self.next_path = next_path

    @property
    def location(self) -> str:
        if not self.next_path:
            return self.login_path
        return f"{self.login_path}?{urlencode({'next': self.next_path})}"


# =============================================================================
# Not Found Exceptions (404)
# =============================================================================

class NotFoundError(PortalException):
    """Raised when a lookup comes back empty."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message=message, code=code, status_code=404)


class CustomerNotFoundError(NotFoundError):
    """Raised when the user's email has no billing customer."""

    def __init__(self):
        super().__init__("Customer not found", code="CUSTOMER_NOT_FOUND")


class SubscriptionNotFoundError(NotFoundError):
    """
    Raised when a subscription doesn't exist or isn't owned by the caller.

    Both cases are reported identically so callers can't probe for ids.
    """

    def __init__(self):
        super().__init__("Subscription not found", code="SUBSCRIPTION_NOT_FOUND")


# =============================================================================
# Upstream Exceptions (500)
# =============================================================================

class UpstreamError(PortalException):
    """
    Raised when a managed service (auth, store, billing) fails.

    The message sent to the caller is generic; log the cause before raising.
    """

    def __init__(
        self,
        message: str = "Upstream service error",
        code: str = "UPSTREAM_ERROR",
        retryable: bool = False,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
        )
        self.retryable = retryable


class SessionServiceError(UpstreamError):
    """Raised when Supabase Auth fails on an explicit auth action."""

    def __init__(self, message: str = "Authentication service error"):
        super().__init__(message=message, code="SESSION_SERVICE_ERROR")


class StoreError(UpstreamError):
    """Raised when the mirrored billing store can't be queried."""

    def __init__(self):
        super().__init__(message="Failed to load billing records", code="STORE_ERROR")


class BillingProviderError(UpstreamError):
    """Raised when Paddle rejects or fails a subscription call."""

    def __init__(self, action: str, retryable: bool = False):
        super().__init__(
            message=f"Failed to {action} subscription",
            code="BILLING_PROVIDER_ERROR",
            retryable=retryable,
        )
        self.action = action

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["retryable"] = self.retryable
        return result


# =============================================================================
# Exception Handlers
# =============================================================================

async def portal_exception_handler(
    request: Request,
    exc: PortalException
) -> JSONResponse | RedirectResponse:
    """
    Convert PortalException to a response.

    Returns structured error with:
    - error: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context

    LoginRequiredError becomes a 303 redirect to the login page instead.
    """
    if isinstance(exc, LoginRequiredError):
        return RedirectResponse(url=exc.location, status_code=303)

    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle request body/query validation errors.

    Malformed bodies are a 400 like any other bad input.
    """
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "code": "VALIDATION_ERROR",
            "details": {"errors": str(exc)},
        }
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Also called by the session refresh gate, so that cookies it has
    queued still reach the client on a 500.
    """
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )
