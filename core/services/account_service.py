# =============================================================================
# core/services/account_service.py - Account Page Data
# =============================================================================
# Builds the data behind the account pages from the mirrored billing tables:
# - overview: customer id + subscription count
# - subscriptions: newest first
# - billing: recent transactions + Paddle customer portal links (the general
#   overview and one set of deep links per mirrored subscription)
#
# A user without a customer row simply has no billing data yet.
# =============================================================================

import logging
from typing import Any

from app.auth.models import AuthUser
from app.exceptions import StoreError
from core.models.billing import (
    AccountOverview,
    BillingSummary,
    Customer,
    PortalSubscriptionLink,
    Subscription,
)
from lib.paddle_client import PaddleClient, PaddleClientError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_email

logger = logging.getLogger(__name__)

TRANSACTION_PAGE_SIZE = 50


class AccountService:
    """Read-only account views for the signed-in user."""

    def __init__(
        self,
        store: SupabaseClient,
        billing: PaddleClient,
        normalize_email: bool = False,
    ):
        self.store = store
        self.billing = billing
        self.normalize_email = normalize_email

    def get_customer(self, user: AuthUser) -> Customer | None:
        if not user.email:
            return None
        email = normalize_email(user.email) if self.normalize_email else user.email
        try:
            return self.store.fetch_customer_by_email(email)
        except SupabaseClientError as e:
            logger.error(f"Customer lookup failed for user {user.id}: {e}")
            raise StoreError()

    def _subscriptions_of(self, customer: Customer, user: AuthUser) -> list[Subscription]:
        try:
            return self.store.list_subscriptions(customer.customer_id)
        except SupabaseClientError as e:
            logger.error(f"Subscription listing failed for user {user.id}: {e}")
            raise StoreError()

    def list_subscriptions(self, user: AuthUser) -> list[Subscription]:
        """Subscriptions of the user's customer, newest first (empty without one)."""
        customer = self.get_customer(user)
        if customer is None:
            return []
        return self._subscriptions_of(customer, user)

    def get_overview(self, user: AuthUser) -> AccountOverview:
        customer = self.get_customer(user)
        if customer is None:
            return AccountOverview()

        subscriptions = self._subscriptions_of(customer, user)
        return AccountOverview(
            customer_id=customer.customer_id,
            subscription_count=len(subscriptions),
            active_subscription_count=sum(
                1 for s in subscriptions if s.subscription_status == "active"
            ),
        )

    def get_billing(self, user: AuthUser) -> BillingSummary:
        """
        Transactions and the customer portal links.

        The portal links are best effort: if Paddle fails, `portal_url` is
        None, `portal_subscriptions` is empty and the transactions are still
        returned.
        """
        customer = self.get_customer(user)
        if customer is None:
            return BillingSummary()

        customer_id = customer.customer_id
        try:
            transactions = self.store.list_transactions(customer_id, limit=TRANSACTION_PAGE_SIZE)
        except SupabaseClientError as e:
            logger.error(f"Transaction listing failed for user {user.id}: {e}")
            raise StoreError()

        subscriptions = self._subscriptions_of(customer, user)
        portal_url, links = self._portal_links(customer_id, subscriptions)

        return BillingSummary(
            customer_id=customer_id,
            transactions=transactions,
            portal_url=portal_url,
            portal_subscriptions=links,
        )

    def _portal_links(
        self,
        customer_id: str,
        subscriptions: list[Subscription],
    ) -> tuple[str | None, list[PortalSubscriptionLink]]:
        """
        Create a portal session covering the customer's subscriptions.

        Returns:
            (overview URL or None, deep links per subscription)
        """
        statuses = {s.subscription_id: s.subscription_status for s in subscriptions}
        try:
            session = self.billing.create_portal_session(
                customer_id,
                subscription_ids=list(statuses) or None,
            )
        except PaddleClientError as e:
            logger.warning(f"Portal session failed for customer {customer_id}: {e.code} {e.message}")
            return None, []

        urls: dict[str, Any] = (session.get("urls") if isinstance(session, dict) else None) or {}
        overview = (urls.get("general") or {}).get("overview")
        if overview is None:
            logger.warning(f"Portal session for customer {customer_id} has no overview URL")

        links = [
            PortalSubscriptionLink(
                id=entry["id"],
                status=statuses.get(entry["id"]),
                cancel_subscription=entry.get("cancel_subscription"),
                update_subscription_payment_method=entry.get("update_subscription_payment_method"),
            )
            for entry in urls.get("subscriptions") or []
            if entry.get("id")
        ]
        return overview, links
