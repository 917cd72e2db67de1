# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Cookie-based sessions managed by Supabase Auth.
#
# Usage:
#   from app.auth import CurrentUser, PageUser
#
#   @router.get("/protected")
#   async def protected(user: CurrentUser):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.guard import (
    AuthGuard,
    Authenticated,
    CurrentUser,
    PageUser,
    Unauthenticated,
    get_current_user,
    require_user,
)
from app.auth.models import AuthUser, UserResponse

__all__ = [
    "AuthGuard",
    "Authenticated",
    "Unauthenticated",
    "CurrentUser",
    "PageUser",
    "get_current_user",
    "require_user",
    "AuthUser",
    "UserResponse",
]
