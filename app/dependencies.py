# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# Long-lived resources (settings, store wrapper, Paddle client, session client
# factory) are built once by create_app() and kept on app.state; everything
# built from them here is per request.
# =============================================================================

from typing import Annotated

from fastapi import Depends, Request

from app.auth.cookies import RequestCookieBridge
from app.auth.middleware import get_cookie_jar
from app.auth.session import SessionClient
from app.config import Settings
from core.services import AccountService, SubscriptionService
from lib.paddle_client import PaddleClient
from lib.supabase_client import SupabaseClient


def get_app_settings(request: Request) -> Settings:
    """Settings the app was built with."""
    return request.app.state.settings


def get_store(request: Request) -> SupabaseClient:
    """Mirrored billing store wrapper."""
    return request.app.state.store


def get_billing_client(request: Request) -> PaddleClient:
    """Paddle client built at startup."""
    return request.app.state.billing_client


def get_writable_session_client(request: Request) -> SessionClient:
    """
    Session client for auth actions (login, signup, callback, signout).

    Its cookie writes go to the request's jar, which the refresh gate applies
    to the response.
    """
    factory = request.app.state.session_client_factory
    bridge = RequestCookieBridge.from_request(request, sink=get_cookie_jar(request))
    return factory(bridge)


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StoreDep = Annotated[SupabaseClient, Depends(get_store)]
BillingDep = Annotated[PaddleClient, Depends(get_billing_client)]
WritableSessionClientDep = Annotated[SessionClient, Depends(get_writable_session_client)]


def get_subscription_service(
    store: StoreDep,
    billing: BillingDep,
    settings: SettingsDep,
) -> SubscriptionService:
    return SubscriptionService(store, billing, normalize_email=settings.NORMALIZE_CUSTOMER_EMAIL)


def get_account_service(
    store: StoreDep,
    billing: BillingDep,
    settings: SettingsDep,
) -> AccountService:
    return AccountService(store, billing, normalize_email=settings.NORMALIZE_CUSTOMER_EMAIL)


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
