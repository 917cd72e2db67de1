# =============================================================================
# app/routers/account.py - Account Pages
# =============================================================================
# Data for the server-rendered account pages. Every page requires a signed-in
# user; anonymous requests are redirected to the login page.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

from app.auth.guard import PageUser
from app.auth.models import AuthUser, PasswordUpdateRequest, UserResponse
from app.auth.routes import update_password
from app.dependencies import AccountServiceDep, WritableSessionClientDep
from core.models.billing import AccountOverview, BillingSummary, SubscriptionList

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class SecurityPage(BaseModel):
    user: UserResponse


class OverviewPage(AccountOverview):
    user: UserResponse


class SubscriptionsPage(SubscriptionList):
    user: UserResponse


class BillingPage(BillingSummary):
    user: UserResponse


def _user(user: AuthUser) -> UserResponse:
    return UserResponse(**user.model_dump())


# =============================================================================
# Pages
# =============================================================================

@router.get("", response_model=OverviewPage)
def account_overview(user: PageUser, service: AccountServiceDep) -> OverviewPage:
    """Dashboard: who is signed in and a summary of their billing."""
    overview = service.get_overview(user)
    return OverviewPage(user=_user(user), **overview.model_dump())


@router.get("/subscriptions", response_model=SubscriptionsPage)
def account_subscriptions(user: PageUser, service: AccountServiceDep) -> SubscriptionsPage:
    return SubscriptionsPage(user=_user(user), subscriptions=service.list_subscriptions(user))


@router.get("/billing", response_model=BillingPage)
def account_billing(user: PageUser, service: AccountServiceDep) -> BillingPage:
    """Recent transactions and the Paddle customer portal links (may be empty)."""
    billing = service.get_billing(user)
    return BillingPage(
        user=_user(user),
        customer_id=billing.customer_id,
        transactions=billing.transactions,
        portal_url=billing.portal_url,
        portal_subscriptions=billing.portal_subscriptions,
    )


@router.get("/security", response_model=SecurityPage)
async def account_security(user: PageUser) -> SecurityPage:
    return SecurityPage(user=_user(user))


@router.post("/security/password", response_model=UserResponse)
def change_password(
    body: PasswordUpdateRequest,
    user: PageUser,
    client: WritableSessionClientDep,
) -> UserResponse:
    """Change the signed-in user's password."""
    return update_password(client, body.password)
