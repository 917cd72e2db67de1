# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import get_settings
#   settings = get_settings()
#   print(settings.session_cookie_name)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Settings are assembled once by create_app() and passed down to the
# components that need them (store, billing client, session gate).
# =============================================================================

from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # Auth (session service) and the mirrored billing tables both live here

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key (used for session clients)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (read-only mirror lookups, bypasses RLS)"
    )

    # -------------------------------------------------------------------------
    # Paddle Billing Configuration
    # -------------------------------------------------------------------------

    PADDLE_API_KEY: str = Field(
        ...,
        description="Paddle Billing server-side API key (bearer credential)"
    )

    PADDLE_ENVIRONMENT: Literal["sandbox", "production"] = Field(
        default="sandbox",
        description="Selects the Paddle API base URL"
    )

    PADDLE_API_VERSION: str = Field(
        default="1",
        description="Value sent in the Paddle-Version header"
    )

    # -------------------------------------------------------------------------
    # Outbound Calls
    # -------------------------------------------------------------------------

    OUTBOUND_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout applied to every call to Paddle and the Supabase REST API"
    )

    # -------------------------------------------------------------------------
    # Session Settings
    # -------------------------------------------------------------------------

    SESSION_REFRESH_PATHS: str = Field(
        default="/account,/auth,/api/v1/subscriptions",
        description="Path prefixes where the session is validated/refreshed (comma-separated)"
    )

    SESSION_COOKIE_MAX_AGE: int = Field(
        default=400 * 24 * 60 * 60,
        ge=60,
        description="Max-Age of session cookies in seconds"
    )

    NORMALIZE_CUSTOMER_EMAIL: bool = Field(
        default=False,
        description="Trim and lowercase the user's email before the customer lookup"
    )

    SITE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL, used for auth email redirect links"
    )

    LOGIN_PATH: str = Field(
        default="/auth/login",
        description="Where unauthenticated page requests are redirected"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def session_refresh_paths_list(self) -> list[str]:
        """
        Parse SESSION_REFRESH_PATHS into a list of prefixes.

        Example: "/account, /auth" -> ["/account", "/auth"]
        """
        return [p.strip() for p in self.SESSION_REFRESH_PATHS.split(",") if p.strip()]

    @property
    def supabase_project_ref(self) -> str:
        """
        Project ref taken from the Supabase URL host.

        Example: "https://abcd1234.supabase.co" -> "abcd1234"
        """
        host = urlparse(self.SUPABASE_URL).hostname or ""
        return host.split(".")[0]

    @property
    def session_cookie_name(self) -> str:
        """Base name of the session cookie (chunks get a .N suffix)."""
        return f"sb-{self.supabase_project_ref}-auth-token"

    @property
    def cookie_secure(self) -> bool:
        """Only mark cookies Secure outside local development."""
        return self.ENVIRONMENT != "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()
