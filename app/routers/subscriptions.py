# =============================================================================
# app/routers/subscriptions.py - Subscription Endpoints
# =============================================================================
# JSON API for the signed-in user's subscriptions:
# - POST /api/v1/subscriptions/manage - pause, cancel or resume
# - GET  /api/v1/subscriptions        - list (from the mirrored store)
#
# The session is checked before any store lookup; an anonymous call is a 401.
# =============================================================================

import logging

from fastapi import APIRouter, Request

from app.auth.guard import CurrentUser, authenticate
from app.dependencies import AccountServiceDep, SubscriptionServiceDep
from core.models.billing import (
    ManageSubscriptionRequest,
    ManageSubscriptionResponse,
    SubscriptionList,
)
from core.services import parse_action

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/manage", response_model=ManageSubscriptionResponse)
def manage_subscription(
    body: ManageSubscriptionRequest,
    request: Request,
    service: SubscriptionServiceDep,
) -> ManageSubscriptionResponse:
    """
    Pause, cancel or resume one of the caller's subscriptions.

    The body is validated first, then the session. Pause and cancel take
    effect at the next billing period (cancel takes effect now with
    `immediate: true`); resume is immediate.

    Example:
        POST /api/v1/subscriptions/manage
        {"subscriptionId": "sub_01h...", "action": "pause"}

    Returns:
        {"success": true, "message": "Subscription pause successful", "data": {...}}

    Raises:
        400: Missing fields or unknown action
        401: No valid session
        404: No customer for the user, or subscription not owned
        500: Store or Paddle failure
    """
    action = parse_action(body.subscription_id, body.action)
    user = authenticate(request)

    data = service.perform_action(
        body.subscription_id,
        action.value,
        user,
        immediate=body.immediate,
    )
    return ManageSubscriptionResponse(
        success=True,
        message=f"Subscription {action.value} successful",
        data=data,
    )


@router.get("", response_model=SubscriptionList)
def list_subscriptions(user: CurrentUser, service: AccountServiceDep) -> SubscriptionList:
    """List the caller's subscriptions, newest first."""
    return SubscriptionList(subscriptions=service.list_subscriptions(user))
