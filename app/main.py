# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Account Portal API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.auth import routes as auth_routes
from app.auth.middleware import SessionRefreshMiddleware
from app.auth.session import SessionClientFactory
from app.config import Settings, get_settings
from app.exceptions import (
    PortalException,
    portal_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.routers import account, health, subscriptions
from lib.paddle_client import PaddleClient
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: log the configuration in use
    - Shutdown: close the outbound HTTP clients
    """
    settings = app.state.settings
    logger.info(f"Starting Account Portal API in {settings.ENVIRONMENT} mode")
    logger.info(f"Paddle environment: {settings.PADDLE_ENVIRONMENT}")
    logger.info(f"Session refresh paths: {settings.session_refresh_paths_list}")

    yield

    logger.info("Shutting down Account Portal API")
    app.state.billing_client.close()
    app.state.session_client_factory.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    All long-lived resources are created here, once, and stored on app.state:
    - settings
    - store: mirrored billing tables (Supabase, service role)
    - billing_client: Paddle
    - session_client_factory: per-request Supabase auth clients

    Args:
        settings: Settings to use (default: loaded from the environment)
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Account Portal API",
        description="""
## Account & Billing API

Cookie-session authentication (Supabase Auth) and self-service subscription
management (Paddle Billing).

### Key Features

- **Auth flows**: sign up, log in, password reset, email link callback, sign out
- **Account pages**: overview, subscriptions, billing history, security
- **Subscription actions**: pause, cancel or resume your own subscription

### Quick Start

```bash
# 1. Log in (stores session cookies)
curl -c jar -X POST http://localhost:8000/auth/login \\
  -H "Content-Type: application/json" \\
  -d '{"email": "you@example.com", "password": "..."}'

# 2. Pause a subscription
curl -b jar -X POST http://localhost:8000/api/v1/subscriptions/manage \\
  -H "Content-Type: application/json" \\
  -d '{"subscriptionId": "sub_01h...", "action": "pause"}'
```
""",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Auth",
                "description": "Log in, sign up, password reset and sign out",
            },
            {
                "name": "Account",
                "description": "Data for the account pages",
            },
            {
                "name": "Subscriptions",
                "description": "Manage the signed-in user's subscriptions",
            },
            {
                "name": "Health",
                "description": "API health and readiness checks",
            },
        ],
    )

    app.state.settings = settings
    app.state.store = SupabaseClient.from_settings(settings)
    app.state.billing_client = PaddleClient.from_settings(settings)
    app.state.session_client_factory = SessionClientFactory.from_settings(settings)

    # =========================================================================
    # Middleware
    # =========================================================================

    # Session refresh gate - validates/refreshes the cookie session
    app.add_middleware(
        SessionRefreshMiddleware,
        prefixes=settings.session_refresh_paths_list,
        cookie_name=settings.session_cookie_name,
    )

    # CORS middleware - allows cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    app.add_exception_handler(PortalException, portal_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_exception_handler(Exception, unhandled_exception_handler)

    # =========================================================================
    # Routers
    # =========================================================================

    # Authentication flows (cookie session)
    app.include_router(auth_routes.router)

    # Account pages
    app.include_router(
        account.router,
        prefix="/account",
        tags=["Account"]
    )

    # Subscription management endpoints
    app.include_router(
        subscriptions.router,
        prefix="/api/v1/subscriptions",
        tags=["Subscriptions"]
    )

    # Health check endpoints
    app.include_router(
        health.router,
        prefix="/api/v1",
        tags=["Health"]
    )

    # =========================================================================
    # Root Endpoint
    # =========================================================================

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint - returns API info.
        """
        return {
            "name": "Account Portal API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


app = create_app()
