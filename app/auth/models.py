# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data and auth flow requests.
# =============================================================================

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Authenticated user as reported by Supabase Auth.

    Only the identity fields this app needs; the auth service stays the
    source of truth for everything else.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None

    @classmethod
    def from_supabase(cls, user: Any) -> "AuthUser":
        """Build from a supabase_auth User object."""
        return cls(
            id=user.id,
            email=user.email,
            created_at=getattr(user, "created_at", None),
            last_sign_in_at=getattr(user, "last_sign_in_at", None),
        )


class UserResponse(BaseModel):
    """User payload returned by auth and account endpoints."""
    id: UUID
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


# =============================================================================
# Auth Flow Requests
# =============================================================================

class CredentialsRequest(BaseModel):
    """Email + password, used by login and signup."""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class SignupRequest(CredentialsRequest):
    """Signup needs a real password, not just a non-empty one."""
    password: str = Field(..., min_length=8, max_length=256)


class ForgotPasswordRequest(BaseModel):
    """Request a password reset email."""
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    """Set a new password for the signed-in user."""
    password: str = Field(..., min_length=8, max_length=256)


class AuthResult(BaseModel):
    """Response of login/signup."""
    success: bool = True
    user: Optional[UserResponse] = None
    confirmation_required: bool = False
