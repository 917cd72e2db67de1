# =============================================================================
# core/services/subscription_service.py - Subscription Action Dispatcher
# =============================================================================
# Lets a signed-in user pause, cancel or resume one of their own subscriptions.
#
# Flow for every action:
# 1. Validate the request (subscription id + known action)
# 2. Resolve the user's billing customer by email
# 3. Resolve the subscription, scoped to that customer
# 4. Call Paddle exactly once
#
# Nothing is written to the mirrored store: it catches up through Paddle's
# webhooks. Failures before step 4 never reach Paddle.
# =============================================================================

import logging
from typing import Any

from app.auth.models import AuthUser
from app.exceptions import (
    BillingProviderError,
    CustomerNotFoundError,
    InvalidActionError,
    MissingFieldsError,
    StoreError,
    SubscriptionNotFoundError,
)
from core.models.billing import Customer, EffectiveFrom, SubscriptionAction
from lib.paddle_client import PaddleClient, PaddleClientError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_email

logger = logging.getLogger(__name__)


def parse_action(subscription_id: str | None, action: str | None) -> SubscriptionAction:
    """
    Validate the raw request fields.

    Raises:
        MissingFieldsError: If either field is missing or blank
        InvalidActionError: If action is not pause/cancel/resume
    """
    if not subscription_id or not action:
        raise MissingFieldsError(["subscriptionId", "action"])

    try:
        return SubscriptionAction(action)
    except ValueError:
        raise InvalidActionError(action, SubscriptionAction.values())


class SubscriptionService:
    """
    Subscription mutations on behalf of a signed-in user.

    Example:
        service = SubscriptionService(store, paddle)
        data = service.perform_action("sub_01h...", "pause", user)
    """

    def __init__(
        self,
        store: SupabaseClient,
        billing: PaddleClient,
        normalize_email: bool = False,
    ):
        self.store = store
        self.billing = billing
        self.normalize_email = normalize_email

    def perform_action(
        self,
        subscription_id: str | None,
        action: str | None,
        user: AuthUser,
        immediate: bool = False,
    ) -> Any:
        """
        Validate, authorize and dispatch one subscription action.

        Args:
            subscription_id: Paddle subscription id from the request
            action: "pause", "cancel" or "resume"
            user: The signed-in user
            immediate: For cancel only: cancel now instead of at period end

        Returns:
            Paddle's `data` payload, unmodified

        Raises:
            MissingFieldsError / InvalidActionError: 400
            CustomerNotFoundError / SubscriptionNotFoundError: 404
            StoreError / BillingProviderError: 500
        """
        parsed = parse_action(subscription_id, action)

        customer = self.resolve_customer(user)
        if customer is None:
            raise CustomerNotFoundError()

        try:
            subscription = self.store.fetch_subscription(subscription_id, customer.customer_id)
        except SupabaseClientError as e:
            logger.error(f"Subscription lookup failed: {e}")
            raise StoreError()

        if subscription is None:
            logger.info(
                f"User {user.id} asked to {parsed.value} subscription {subscription_id} "
                f"not owned by customer {customer.customer_id}"
            )
            raise SubscriptionNotFoundError()

        return self._dispatch(subscription_id, parsed, immediate)

    def resolve_customer(self, user: AuthUser) -> Customer | None:
        """
        Find the billing customer for a user's email.

        Returns:
            Customer, or None when the user has no email or no row

        Raises:
            StoreError: If the lookup fails
        """
        if not user.email:
            return None

        email = normalize_email(user.email) if self.normalize_email else user.email
        try:
            return self.store.fetch_customer_by_email(email)
        except SupabaseClientError as e:
            logger.error(f"Customer lookup failed for user {user.id}: {e}")
            raise StoreError()

    def _dispatch(self, subscription_id: str, action: SubscriptionAction, immediate: bool) -> Any:
        try:
            if action == SubscriptionAction.PAUSE:
                data = self.billing.pause_subscription(
                    subscription_id,
                    effective_from=EffectiveFrom.NEXT_BILLING_PERIOD.value,
                )
            elif action == SubscriptionAction.CANCEL:
                effective_from = (
                    EffectiveFrom.IMMEDIATELY if immediate else EffectiveFrom.NEXT_BILLING_PERIOD
                )
                data = self.billing.cancel_subscription(
                    subscription_id,
                    effective_from=effective_from.value,
                )
            else:
                data = self.billing.resume_subscription(subscription_id)
        except PaddleClientError as e:
            logger.error(
                f"Paddle {action.value} failed for {subscription_id}: "
                f"{e.code} status={e.status_code} request_id={e.request_id}"
            )
            raise BillingProviderError(action.value, retryable=e.retryable)

        logger.info(f"Subscription {subscription_id}: {action.value} accepted by Paddle")
        return data
